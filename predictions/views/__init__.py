from predictions.views.account import ProfileView, RegisterView
from predictions.views.admin import (
    AdminBulkDeletePurchasesView,
    AdminPaymentListView,
    AdminPaymentStatsView,
    AdminPredictionDetailView,
    AdminPredictionListCreateView,
    AdminRefundPurchaseView,
    AdminResultListCreateView,
)
from predictions.views.catalog import LotteryListView
from predictions.views.prediction import (
    PredictionDetailView,
    PredictionListView,
    PredictionResultView,
    TrialPredictionListView,
)
from predictions.views.purchase import MyPurchasesView, PurchasePredictionView

__all__ = [
    "ProfileView",
    "RegisterView",
    "AdminBulkDeletePurchasesView",
    "AdminPaymentListView",
    "AdminPaymentStatsView",
    "AdminPredictionDetailView",
    "AdminPredictionListCreateView",
    "AdminRefundPurchaseView",
    "AdminResultListCreateView",
    "LotteryListView",
    "PredictionDetailView",
    "PredictionListView",
    "PredictionResultView",
    "TrialPredictionListView",
    "MyPurchasesView",
    "PurchasePredictionView",
]
