from predictions.models.prediction import Prediction
from predictions.models.profile import Profile
from predictions.models.purchase import Purchase
from predictions.models.result import Result

__all__ = ["Prediction", "Profile", "Purchase", "Result"]
