"""VisitRecord model - append-only purchase audit."""

from django.db import models
from django.utils.translation import gettext_lazy as _

from stampman.exceptions import PersistenceError


class VisitRecord(models.Model):
    """
    Immutable record of a registered purchase.

    Created once per purchase. Never modified or deleted.
    """

    customer = models.ForeignKey(
        "stampman.Profile",
        on_delete=models.CASCADE,
        related_name="visits",
        verbose_name=_("cliente"),
    )
    amount_spent = models.DecimalField(_("monto"), max_digits=10, decimal_places=2)
    cashback_earned = models.PositiveIntegerField(_("puntos ganados"), default=0)
    stamps_earned = models.PositiveIntegerField(_("sellos ganados"), default=0)
    notes = models.CharField(_("notas"), max_length=500, blank=True)
    processed_by = models.ForeignKey(
        "stampman.Profile",
        on_delete=models.SET_NULL,
        related_name="processed_visits",
        null=True,
        blank=True,
        verbose_name=_("procesado por"),
    )
    created_at = models.DateTimeField(_("fecha"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("visita")
        verbose_name_plural = _("visitas")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer", "-created_at"], name="stampman_visit_cust_idx"),
        ]

    def __str__(self):
        return f"{self.customer_id}: ${self.amount_spent} (+{self.cashback_earned}pts)"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PersistenceError("APPEND_ONLY", record="VisitRecord")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PersistenceError("APPEND_ONLY", record="VisitRecord")
