from django.db import models


class DenialReason(models.TextChoices):
    LOTTERY_MISMATCH = "lottery_mismatch", "Trial is for a different lottery"
    NO_LOTTERY_SELECTED = "no_lottery_selected", "No trial lottery selected"
    TRIAL_EXPIRED = "trial_expired", "Trial period has ended"
    ALREADY_VIEWED_TODAY = "already_viewed_today", "Free prediction already used today"
    MUST_PURCHASE = "must_purchase", "Purchase required"


class UnknownLottery(LookupError):
    code = "invalid_lottery"

    def __init__(self, lottery_code):
        self.lottery_code = lottery_code
        super().__init__(f"Invalid lottery type: {lottery_code!r}.")


class LotteryMismatch(ValueError):
    """The lottery in the request does not match the prediction's lottery."""

    code = "lottery_mismatch"

    def __init__(self, requested, actual):
        self.requested = requested
        self.actual = actual
        super().__init__(
            f"Lottery type mismatch: prediction is for {actual}, "
            f"but requested {requested}."
        )


class AlreadyPurchased(ValueError):
    code = "already_purchased"


class InvalidTransition(ValueError):
    code = "invalid_transition"


class AccessDenied(Exception):
    """
    The user is not entitled to the prediction's numbers.

    This is an expected outcome of the entitlement check, not a fault.
    """

    def __init__(self, reason, message):
        self.reason = reason
        self.code = DenialReason(reason).value
        super().__init__(message)
