from predictions.services.access import AccessGrant, AccessService, TrialStatus
from predictions.services.account import AccountService
from predictions.services.notifications import NotificationService
from predictions.services.prediction import PredictionService
from predictions.services.purchase import PurchaseService

__all__ = [
    "AccessGrant",
    "AccessService",
    "AccountService",
    "NotificationService",
    "PredictionService",
    "PurchaseService",
    "TrialStatus",
]
