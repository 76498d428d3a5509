import logging
import math
import uuid
from dataclasses import dataclass
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from predictions.catalog import get_lottery
from predictions.derivation import ViableNumbers, viable_numbers_for
from predictions.exceptions import AccessDenied, DenialReason, LotteryMismatch
from predictions.models import Prediction, Profile, Purchase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrialStatus:
    active: bool
    days_remaining: int = 0
    # Denial reason to report when the trial cannot be used.
    reason: str = ""


@dataclass(frozen=True)
class AccessGrant:
    """The outcome of a successful entitlement check."""

    PURCHASED = "purchased"
    TRIAL = "trial"

    prediction: Prediction
    purchase: Purchase
    via: str
    newly_granted: bool
    viable: ViableNumbers


def generate_transaction_id(prefix: str) -> str:
    stamp = int(timezone.now().timestamp() * 1000)
    return f"{prefix}-{stamp}-{uuid.uuid4().hex[:8].upper()}"


class AccessService:
    """
    Decides whether a user may see a prediction's viable numbers.

    A user is entitled through a completed purchase, through a trial view
    they already hold for the same prediction, or by a fresh trial grant:
    inside the trial window, for their selected lottery, at most one new
    prediction per local calendar day.
    """

    @staticmethod
    def trial_status(profile, now=None) -> TrialStatus:
        """The only place trial-window membership is decided."""
        now = now or timezone.now()
        if profile is None or not (profile.trial_start and profile.trial_end):
            return TrialStatus(active=False, reason=DenialReason.MUST_PURCHASE)
        if not profile.trial_start <= now <= profile.trial_end:
            return TrialStatus(active=False, reason=DenialReason.TRIAL_EXPIRED)
        days_remaining = math.ceil((profile.trial_end - now) / timedelta(days=1))
        return TrialStatus(active=True, days_remaining=days_remaining)

    @staticmethod
    def check_lottery(prediction, lottery_code):
        """
        Raises:
            UnknownLottery: If `lottery_code` is not in the catalog.
            LotteryMismatch: If the prediction belongs to another lottery.
        """
        requested = get_lottery(lottery_code).code
        if requested != prediction.lottery_code:
            raise LotteryMismatch(requested, prediction.lottery_code)

    @staticmethod
    def trial_eligibility(profile, lottery_code, now=None) -> TrialStatus:
        """
        Whether the trial may be used for `lottery_code` right now.

        Checks the trial window, then that a lottery is selected, then that it
        matches. The one-new-view-per-day limit is enforced when granting.
        """
        status = AccessService.trial_status(profile, now)
        if not status.active:
            return status
        if not profile.selected_lottery:
            return TrialStatus(active=False, reason=DenialReason.NO_LOTTERY_SELECTED)
        if profile.selected_lottery.lower() != lottery_code.lower():
            return TrialStatus(active=False, reason=DenialReason.LOTTERY_MISMATCH)
        return status

    @staticmethod
    def denial_message(profile, reason):
        if reason == DenialReason.TRIAL_EXPIRED:
            return "Your free trial has ended. Purchase this prediction to view it."
        if reason == DenialReason.NO_LOTTERY_SELECTED:
            return "Select a lottery in your profile to use your free trial."
        if reason == DenialReason.LOTTERY_MISMATCH:
            return (
                f"Your free trial covers "
                f"{get_lottery(profile.selected_lottery).name} predictions only."
            )
        if reason == DenialReason.ALREADY_VIEWED_TODAY:
            return "You have already used today's free prediction. Come back tomorrow."
        return "Purchase this prediction to view its numbers."

    @staticmethod
    def _deny(user, prediction, reason, message):
        logger.info(
            "Prediction access denied: user=%s prediction=%s reason=%s",
            user.pk,
            prediction.pk,
            reason,
        )
        raise AccessDenied(reason, message)

    @staticmethod
    def _find_purchase(user, prediction, payment_status):
        return Purchase.objects.filter(
            user=user, prediction=prediction, payment_status=payment_status
        ).first()

    @staticmethod
    def _grant_trial(user, prediction, now, ip_address=None, user_agent=""):
        """
        Evaluate trial eligibility and record a new trial view.

        Must be called inside an atomic block. The profile row lock serializes
        concurrent grants for one user; the unique (user, trial_day)
        constraint rejects any grant that slips past it.
        """
        Profile.objects.get_or_create(user=user)
        profile = Profile.objects.select_for_update().get(user=user)

        # A concurrent request may have granted this prediction while we
        # waited for the lock.
        existing = AccessService._find_purchase(
            user, prediction, Purchase.PaymentStatus.TRIAL
        )
        if existing:
            return existing, False

        status = AccessService.trial_eligibility(profile, prediction.lottery_code, now)
        if not status.active:
            AccessService._deny(
                user,
                prediction,
                status.reason,
                AccessService.denial_message(profile, status.reason),
            )

        today = timezone.localdate(now)
        last = profile.last_trial_prediction_at
        if last and timezone.localdate(last) == today:
            AccessService._deny(
                user,
                prediction,
                DenialReason.ALREADY_VIEWED_TODAY,
                AccessService.denial_message(profile, DenialReason.ALREADY_VIEWED_TODAY),
            )

        try:
            with transaction.atomic():
                purchase = Purchase.objects.create(
                    user=user,
                    prediction=prediction,
                    amount=0,
                    payment_method=Purchase.PaymentMethod.TRIAL,
                    payment_status=Purchase.PaymentStatus.TRIAL,
                    is_trial_view=True,
                    trial_day=today,
                    transaction_id=generate_transaction_id("TRIAL"),
                    ip_address=ip_address,
                    user_agent=user_agent or "",
                )
        except IntegrityError:
            AccessService._deny(
                user,
                prediction,
                DenialReason.ALREADY_VIEWED_TODAY,
                AccessService.denial_message(profile, DenialReason.ALREADY_VIEWED_TODAY),
            )

        profile.last_trial_prediction_at = now
        profile.save(update_fields=["last_trial_prediction_at", "updated_at"])

        logger.info(
            "Trial view granted: user=%s prediction=%s purchase=%s days_remaining=%d",
            user.pk,
            prediction.pk,
            purchase.transaction_id,
            status.days_remaining,
        )
        return purchase, True

    @staticmethod
    def record_download(purchase, prediction, now=None):
        """
        Count a view on the purchase.

        The prediction's aggregate download count moves only on the
        purchase's first download, so re-views never double-count.
        """
        now = now or timezone.now()
        first = Purchase.objects.filter(pk=purchase.pk, download_count=0).update(
            download_count=1, last_downloaded=now
        )
        if first:
            Prediction.objects.filter(pk=prediction.pk).update(
                download_count=F("download_count") + 1
            )
        else:
            Purchase.objects.filter(pk=purchase.pk).update(
                download_count=F("download_count") + 1, last_downloaded=now
            )
        purchase.refresh_from_db(fields=["download_count", "last_downloaded"])

    @staticmethod
    @transaction.atomic
    def open_prediction(
        user, prediction, lottery_code=None, now=None, ip_address=None, user_agent=""
    ) -> AccessGrant:
        """
        Check entitlement and, when granted, record the view.

        Returns:
            AccessGrant with the derived viable numbers.

        Raises:
            LotteryMismatch: If `lottery_code` is given and does not match.
            AccessDenied: If the user is not entitled; carries the reason.
        """
        now = now or timezone.now()
        if lottery_code is not None:
            AccessService.check_lottery(prediction, lottery_code)

        newly_granted = False
        via = AccessGrant.PURCHASED
        purchase = AccessService._find_purchase(
            user, prediction, Purchase.PaymentStatus.COMPLETED
        )
        if purchase is None:
            via = AccessGrant.TRIAL
            purchase = AccessService._find_purchase(
                user, prediction, Purchase.PaymentStatus.TRIAL
            )
        if purchase is None:
            purchase, newly_granted = AccessService._grant_trial(
                user, prediction, now, ip_address=ip_address, user_agent=user_agent
            )

        AccessService.record_download(purchase, prediction, now)
        prediction.refresh_from_db(fields=["download_count"])

        return AccessGrant(
            prediction=prediction,
            purchase=purchase,
            via=via,
            newly_granted=newly_granted,
            viable=viable_numbers_for(prediction),
        )
