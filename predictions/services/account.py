import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from predictions.catalog import get_lottery
from predictions.models import Profile
from wallets.services import WalletService

logger = logging.getLogger(__name__)

MAX_NOTIFICATION_LOTTERIES = 2


class AccountService:
    @staticmethod
    @transaction.atomic
    def register(username, password, selected_lottery, email="", phone="", now=None):
        """
        Create a user with a fresh trial window and an empty wallet.

        Raises:
            UnknownLottery: If `selected_lottery` is not in the catalog.
        """
        now = now or timezone.now()
        lottery = get_lottery(selected_lottery)
        trial_days = getattr(settings, "TRIAL_PERIOD_DAYS", 7)

        user = get_user_model().objects.create_user(
            username=username, email=email, password=password
        )
        profile = Profile.objects.create(
            user=user,
            phone=phone or "",
            selected_lottery=lottery.code,
            trial_start=now,
            trial_end=now + timedelta(days=trial_days),
        )
        WalletService.get_wallet(user)

        logger.info(
            "User registered: user=%s lottery=%s trial_end=%s",
            user.pk,
            lottery.code,
            profile.trial_end.isoformat(),
        )
        return user

    @staticmethod
    def get_profile(user) -> Profile:
        profile, _ = Profile.objects.get_or_create(user=user)
        return profile

    @staticmethod
    def update_profile(user, **changes) -> Profile:
        """Apply validated profile changes (phone and notification settings)."""
        profile = AccountService.get_profile(user)
        if "notification_lotteries" in changes:
            codes = []
            for code in changes["notification_lotteries"]:
                code = get_lottery(code).code
                if code not in codes:
                    codes.append(code)
            if len(codes) > MAX_NOTIFICATION_LOTTERIES:
                raise ValueError(
                    f"At most {MAX_NOTIFICATION_LOTTERIES} notification lotteries may be selected."
                )
            changes["notification_lotteries"] = codes

        for field, value in changes.items():
            setattr(profile, field, value)
        profile.save()
        logger.info("Profile updated: user=%s fields=%s", user.pk, sorted(changes))
        return profile
