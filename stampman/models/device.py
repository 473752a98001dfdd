"""WalletDevice model - Apple Wallet device registrations."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class WalletDevice(models.Model):
    """
    A device that added a customer's Apple Wallet pass.

    Created by the PassKit web service when Wallet registers the pass and
    deleted when the pass is removed. ``updated_at`` is bumped whenever the
    customer's pass changes so the device lists it as updated.
    """

    device_library_identifier = models.CharField(_("dispositivo"), max_length=128)
    push_token = models.CharField(_("token push"), max_length=255)
    pass_type_id = models.CharField(_("tipo de pase"), max_length=255)
    serial_number = models.CharField(_("número de serie"), max_length=128)
    customer = models.ForeignKey(
        "stampman.Profile",
        on_delete=models.CASCADE,
        related_name="wallet_devices",
        verbose_name=_("cliente"),
    )
    created_at = models.DateTimeField(_("registrado en"), auto_now_add=True)
    updated_at = models.DateTimeField(_("actualizado en"), auto_now=True, db_index=True)

    class Meta:
        verbose_name = _("dispositivo wallet")
        verbose_name_plural = _("dispositivos wallet")
        constraints = [
            models.UniqueConstraint(
                fields=["device_library_identifier", "serial_number"],
                name="stampman_unique_device_serial",
            ),
        ]

    def __str__(self):
        return f"{self.device_library_identifier}: {self.serial_number}"
