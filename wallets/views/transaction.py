import logging

from rest_framework.generics import ListAPIView, RetrieveAPIView

from wallets.models import Transaction
from wallets.serializers import TransactionSerializer

logger = logging.getLogger(__name__)


class TransactionListView(ListAPIView):
    """
    GET /api/wallet/transactions/ — The caller's ledger, newest first.

    Query params:
        - status: Filter by status (pending, completed, failed, cancelled)
        - type: Filter by type (credit, debit, refund, payment, bonus, withdrawal)
    """

    serializer_class = TransactionSerializer

    def get_queryset(self):
        queryset = Transaction.objects.filter(
            wallet__user=self.request.user
        ).select_related("wallet")

        tx_status = self.request.query_params.get("status")
        if tx_status:
            queryset = queryset.filter(status=tx_status.lower())

        tx_type = self.request.query_params.get("type")
        if tx_type:
            queryset = queryset.filter(transaction_type=tx_type.lower())

        return queryset


class TransactionDetailView(RetrieveAPIView):
    """GET /api/wallet/transactions/<id>/ — One entry of the caller's ledger."""

    serializer_class = TransactionSerializer
    lookup_field = "id"

    def get_queryset(self):
        return Transaction.objects.filter(wallet__user=self.request.user)
