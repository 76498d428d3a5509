from wallets.serializers.transaction import TransactionSerializer
from wallets.serializers.wallet import WalletSerializer, WalletStatsSerializer
from wallets.serializers.operations import (
    LedgerOperationSerializer,
    PaymentSerializer,
    TopUpSerializer,
)

__all__ = [
    "TransactionSerializer",
    "WalletSerializer",
    "WalletStatsSerializer",
    "LedgerOperationSerializer",
    "PaymentSerializer",
    "TopUpSerializer",
]
