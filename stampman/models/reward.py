"""Reward model - unlockable benefits."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class RewardType(models.TextChoices):
    PRODUCT = "product", _("Producto gratis")
    POINTS = "points", _("Puntos")
    COUPON = "coupon", _("Cupón")


class RewardSource(models.TextChoices):
    STAMPS = "stamps", _("Sellos")
    ROULETTE = "roulette", _("Ruleta")


class Reward(models.Model):
    """
    A benefit earned by a customer.

    Goes from unredeemed to redeemed exactly once; redemption itself lives
    outside this app.
    """

    customer = models.ForeignKey(
        "stampman.Profile",
        on_delete=models.CASCADE,
        related_name="rewards",
        verbose_name=_("cliente"),
    )
    type = models.CharField(_("tipo"), max_length=20, choices=RewardType.choices)
    value = models.CharField(_("valor"), max_length=50, default="1")
    description = models.CharField(_("descripción"), max_length=200)
    source = models.CharField(_("origen"), max_length=20, choices=RewardSource.choices)

    redeemed = models.BooleanField(_("canjeado"), default=False, db_index=True)
    redeemed_at = models.DateTimeField(_("canjeado en"), null=True, blank=True)
    earned_at = models.DateTimeField(_("obtenido en"), auto_now_add=True)
    expires_at = models.DateTimeField(_("vence en"), null=True, blank=True)

    class Meta:
        verbose_name = _("recompensa")
        verbose_name_plural = _("recompensas")
        ordering = ["-earned_at"]

    def __str__(self):
        state = "canjeado" if self.redeemed else "pendiente"
        return f"{self.get_type_display()} ({state})"
