"""Profile model - the identity behind a customer id."""

import uuid as uuid_lib

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Role(models.TextChoices):
    CUSTOMER = "customer", _("Cliente")
    STAFF = "staff", _("Staff")
    ADMIN = "admin", _("Admin")


class Profile(models.Model):
    """
    Customer or staff member.

    ``id`` is the opaque customer id used everywhere else (ledger lookups,
    wallet object ids, QR codes).
    """

    id = models.UUIDField(primary_key=True, default=uuid_lib.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="stampman_profile",
        null=True,
        blank=True,
        verbose_name=_("usuario"),
    )
    name = models.CharField(_("nombre"), max_length=150, blank=True)
    role = models.CharField(
        _("rol"),
        max_length=20,
        choices=Role.choices,
        default=Role.CUSTOMER,
        db_index=True,
    )
    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)

    class Meta:
        verbose_name = _("perfil")
        verbose_name_plural = _("perfiles")

    def __str__(self):
        return f"{self.name or self.pk} ({self.role})"

    @property
    def is_staff_member(self) -> bool:
        return self.role in (Role.STAFF, Role.ADMIN)
