from django.conf import settings
from django.db import models

from predictions.catalog import LOTTERY_CHOICES
from wallets.models import BaseModel


class Profile(BaseModel):
    """
    Per-user account data beyond authentication.

    The trial window is set once at registration. The wallet balance is not
    stored here: `wallet_balance` reads the ledger-backed wallet.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    phone = models.CharField(max_length=20, blank=True, default="")
    selected_lottery = models.CharField(
        max_length=20,
        choices=LOTTERY_CHOICES,
        blank=True,
        default="",
        help_text="The one lottery whose predictions are free during the trial.",
    )
    trial_start = models.DateTimeField(null=True, blank=True)
    trial_end = models.DateTimeField(null=True, blank=True)
    last_trial_prediction_at = models.DateTimeField(null=True, blank=True)
    prediction_notifications_enabled = models.BooleanField(default=True)
    notification_lotteries = models.JSONField(
        default=list,
        blank=True,
        help_text="Up to two additional lotteries to receive SMS updates for.",
    )

    def __str__(self):
        return f"Profile of {self.user}"

    @property
    def role(self):
        return "admin" if self.user.is_staff else "user"

    @property
    def wallet_balance(self):
        from wallets.services import WalletService

        return WalletService.get_wallet(self.user).balance
