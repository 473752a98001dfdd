"""
Best-effort wallet mirroring.

Ledger commits hand a PassUpdate to WalletSync.dispatch(), which queues it as
a django-rq job (or runs it inline when WALLET_SYNC_ASYNC is False). The job
pushes every configured WalletMirror. Mirror results are only logged. Nothing
raised here can reach the purchase that triggered it.
"""

import logging

from django.utils.module_loading import import_string

from stampman.conf import stampman_settings
from stampman.protocols.wallet import PassUpdate, WalletUpdateResult

logger = logging.getLogger(__name__)


def update_from_ledger(ledger, **extra) -> PassUpdate:
    """Snapshot a CustomerLedger into a PassUpdate."""
    name = ledger.customer.name or stampman_settings.DEFAULT_DISPLAY_NAME
    return PassUpdate(
        customer_id=str(ledger.customer_id),
        points=ledger.cashback_points,
        stamps=ledger.stamps,
        level_points=ledger.level_points,
        customer_name=name,
        **extra,
    )


class WalletSync:
    """Fire-and-forget fan-out of a PassUpdate to every configured mirror."""

    @classmethod
    def dispatch(cls, update: PassUpdate):
        """Queue ``update``; returns the rq Job, or the results when inline."""
        if stampman_settings.WALLET_SYNC_ASYNC:
            from stampman.tasks import sync_wallet_task

            return sync_wallet_task.delay(update.as_payload())
        return cls.run(update)

    @classmethod
    def run(cls, update: PassUpdate) -> list[WalletUpdateResult]:
        """Push to each mirror in turn. Never raises."""
        results = []
        for path in stampman_settings.WALLET_MIRRORS:
            try:
                mirror = import_string(path)()
                result = mirror.push(update)
            except Exception:
                logger.exception(
                    "Wallet mirror %s crashed for customer %s", path, update.customer_id
                )
                continue
            logger.info(
                "Wallet mirror %s %s for customer %s",
                result.mirror,
                result.outcome,
                update.customer_id,
            )
            results.append(result)
        return results


def on_purchase_registered(sender, ledger, **kwargs):
    """purchase_registered receiver (connected in StampmanConfig.ready)."""
    WalletSync.dispatch(update_from_ledger(ledger))
