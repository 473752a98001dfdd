"""Background jobs (django-rq).

Run a worker with ``python manage.py rqworker default``.
"""

import logging

from django_rq import job

from stampman.protocols.wallet import PassUpdate

logger = logging.getLogger(__name__)


@job("default")
def sync_wallet_task(payload: dict) -> list[str]:
    """Push a serialised PassUpdate to every wallet mirror; returns the outcomes."""
    from stampman.wallet.sync import WalletSync

    update = PassUpdate.from_payload(payload)
    logger.info("Wallet sync job started for customer %s", update.customer_id)
    return [result.outcome for result in WalletSync.run(update)]
