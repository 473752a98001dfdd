"""CustomerLedger model - points, stamps and visit counters."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class CustomerLedger(models.Model):
    """
    Authoritative loyalty state for one customer.

    Stamps accumulate across cards; the current card is ``stamps`` clamped to
    STAMPS_PER_CARD. Only PurchaseService (and the redemption/roulette
    collaborators) write to this row, always under a row lock.
    """

    customer = models.OneToOneField(
        "stampman.Profile",
        on_delete=models.CASCADE,
        related_name="ledger",
        verbose_name=_("cliente"),
    )

    cashback_points = models.PositiveIntegerField(_("puntos cashback"), default=0)
    stamps = models.PositiveIntegerField(_("sellos"), default=0)
    level_points = models.PositiveIntegerField(
        _("puntos de nivel"),
        default=0,
        help_text=_("Determina el nivel mostrado en el pase"),
    )
    roulette_visits_since_last_spin = models.PositiveIntegerField(
        _("visitas desde el último giro"),
        default=0,
    )

    last_visit = models.DateTimeField(_("última visita"), null=True, blank=True)
    created_at = models.DateTimeField(_("creado en"), auto_now_add=True)
    updated_at = models.DateTimeField(_("actualizado en"), auto_now=True)

    class Meta:
        verbose_name = _("estado del cliente")
        verbose_name_plural = _("estados de clientes")

    def __str__(self):
        return f"{self.customer_id}: {self.cashback_points}pts | {self.stamps} sellos"

    @property
    def card_progress(self) -> int:
        """Stamps shown on the card, clamped to [0, STAMPS_PER_CARD]."""
        from stampman.conf import stampman_settings

        return max(0, min(self.stamps, stampman_settings.STAMPS_PER_CARD))

    @property
    def level(self) -> str:
        from stampman.conf import stampman_settings

        if self.level_points > stampman_settings.LEVEL_POINTS_THRESHOLD:
            return stampman_settings.ELEVATED_TIER_NAME
        return stampman_settings.BASE_TIER_NAME
