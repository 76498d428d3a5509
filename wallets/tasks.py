import logging

from celery import shared_task

from wallets.models import Wallet
from wallets.services import WalletService

logger = logging.getLogger(__name__)


@shared_task
def reconcile_wallet_balances():
    """
    Periodic task: recompute every wallet's aggregates from its ledger.

    Runs via Celery Beat; wallets whose cached balance or totals drifted
    from the ledger are repaired and counted.
    """
    checked = 0
    repaired = 0

    for wallet_id in Wallet.objects.values_list("pk", flat=True).iterator():
        _, _, fixed = WalletService.reconcile(wallet_id)
        checked += 1
        if fixed:
            repaired += 1

    if repaired:
        logger.warning("Reconciled %d wallet(s); %d had drifted.", checked, repaired)
    else:
        logger.info("Reconciled %d wallet(s); no drift found.", checked)

    return {"checked": checked, "repaired": repaired}
