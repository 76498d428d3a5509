from predictions.serializers.account import ProfileSerializer, RegisterSerializer
from predictions.serializers.catalog import LotterySerializer
from predictions.serializers.prediction import (
    AdminPredictionSerializer,
    PredictionSummarySerializer,
    ResultSerializer,
)
from predictions.serializers.purchase import (
    AdminPurchaseSerializer,
    BulkDeleteSerializer,
    MyPurchaseSerializer,
    PurchaseRequestSerializer,
    PurchaseSerializer,
    RefundSerializer,
)

__all__ = [
    "ProfileSerializer",
    "RegisterSerializer",
    "LotterySerializer",
    "AdminPredictionSerializer",
    "PredictionSummarySerializer",
    "ResultSerializer",
    "AdminPurchaseSerializer",
    "BulkDeleteSerializer",
    "MyPurchaseSerializer",
    "PurchaseRequestSerializer",
    "PurchaseSerializer",
    "RefundSerializer",
]
