from wallets.views.wallet import RetrieveWalletView, WalletStatsView
from wallets.views.operations import (
    BonusView,
    DepositView,
    PaymentView,
    TopUpView,
    WithdrawView,
)
from wallets.views.transaction import TransactionListView, TransactionDetailView

__all__ = [
    "RetrieveWalletView",
    "WalletStatsView",
    "BonusView",
    "DepositView",
    "PaymentView",
    "TopUpView",
    "WithdrawView",
    "TransactionListView",
    "TransactionDetailView",
]
