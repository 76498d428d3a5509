from django.urls import path

from wallets.views import (
    BonusView,
    DepositView,
    PaymentView,
    RetrieveWalletView,
    TopUpView,
    TransactionDetailView,
    TransactionListView,
    WalletStatsView,
    WithdrawView,
)

urlpatterns = [
    path("", RetrieveWalletView.as_view(), name="wallet-detail"),
    path("stats/", WalletStatsView.as_view(), name="wallet-stats"),
    path("deposit", DepositView.as_view(), name="wallet-deposit"),
    path("withdraw", WithdrawView.as_view(), name="wallet-withdraw"),
    path("payment", PaymentView.as_view(), name="wallet-payment"),
    path("top-up", TopUpView.as_view(), name="wallet-top-up"),
    path("users/<int:user_id>/bonus", BonusView.as_view(), name="wallet-bonus"),
    path(
        "transactions/",
        TransactionListView.as_view(),
        name="wallet-transactions",
    ),
    path(
        "transactions/<int:id>/",
        TransactionDetailView.as_view(),
        name="transaction-detail",
    ),
]
