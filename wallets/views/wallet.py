import logging
from datetime import timedelta

from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from wallets.serializers import WalletSerializer, WalletStatsSerializer
from wallets.services import WalletService

logger = logging.getLogger(__name__)


class RetrieveWalletView(APIView):
    """GET /api/wallet/ — The caller's wallet, created on first access."""

    def get(self, request, *args, **kwargs):
        wallet = WalletService.get_wallet(request.user)
        return Response(WalletSerializer(wallet).data)


class WalletStatsView(APIView):
    """GET /api/wallet/stats/ — Totals and recent activity for the caller's wallet."""

    RECENT_LIMIT = 5

    def get(self, request, *args, **kwargs):
        wallet = WalletService.get_wallet(request.user)
        transactions = wallet.transactions.all()

        now = timezone.localtime()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        last_month_start = (month_start - timedelta(days=1)).replace(day=1)

        stats = {
            "current_balance": wallet.balance,
            "total_deposited": wallet.total_deposited,
            "total_withdrawn": wallet.total_withdrawn,
            "transaction_count": transactions.count(),
            "last_transaction_at": wallet.last_transaction_at,
            "recent_transactions": transactions[: self.RECENT_LIMIT],
            "this_month": transactions.filter(created_at__gte=month_start).count(),
            "last_month": transactions.filter(
                created_at__gte=last_month_start, created_at__lt=month_start
            ).count(),
        }
        return Response(WalletStatsSerializer(stats).data)
