from django.urls import path

from predictions.views import (
    AdminBulkDeletePurchasesView,
    AdminPaymentListView,
    AdminPaymentStatsView,
    AdminPredictionDetailView,
    AdminPredictionListCreateView,
    AdminRefundPurchaseView,
    AdminResultListCreateView,
    LotteryListView,
    MyPurchasesView,
    PredictionDetailView,
    PredictionListView,
    PredictionResultView,
    ProfileView,
    PurchasePredictionView,
    RegisterView,
    TrialPredictionListView,
)

urlpatterns = [
    path("lotteries/", LotteryListView.as_view(), name="lottery-list"),
    path("auth/register", RegisterView.as_view(), name="register"),
    path("profile/", ProfileView.as_view(), name="profile"),
    # Fixed segments must precede the <lottery_code> patterns.
    path(
        "predictions/my-purchases/",
        MyPurchasesView.as_view(),
        name="my-purchases",
    ),
    path(
        "predictions/trial/<str:lottery_code>/",
        TrialPredictionListView.as_view(),
        name="trial-predictions",
    ),
    path(
        "predictions/result/<int:pk>/",
        PredictionResultView.as_view(),
        name="prediction-result",
    ),
    path(
        "predictions/<str:lottery_code>/",
        PredictionListView.as_view(),
        name="prediction-list",
    ),
    path(
        "predictions/<str:lottery_code>/<int:pk>/",
        PredictionDetailView.as_view(),
        name="prediction-detail",
    ),
    path(
        "predictions/<str:lottery_code>/<int:pk>/purchase",
        PurchasePredictionView.as_view(),
        name="prediction-purchase",
    ),
    path(
        "admin/predictions/",
        AdminPredictionListCreateView.as_view(),
        name="admin-predictions",
    ),
    path(
        "admin/predictions/<int:pk>/",
        AdminPredictionDetailView.as_view(),
        name="admin-prediction-detail",
    ),
    path(
        "admin/predictions/<int:pk>/results/",
        AdminResultListCreateView.as_view(),
        name="admin-prediction-results",
    ),
    path("admin/payments/", AdminPaymentListView.as_view(), name="admin-payments"),
    path(
        "admin/payments/stats/",
        AdminPaymentStatsView.as_view(),
        name="admin-payment-stats",
    ),
    path(
        "admin/payments/bulk-delete",
        AdminBulkDeletePurchasesView.as_view(),
        name="admin-payments-bulk-delete",
    ),
    path(
        "admin/purchases/<int:pk>/refund",
        AdminRefundPurchaseView.as_view(),
        name="admin-purchase-refund",
    ),
]
