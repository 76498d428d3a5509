from django.conf import settings
from django.db import models
from django.db.models import Q

from predictions.exceptions import InvalidTransition
from wallets.models import BaseModel


class Purchase(BaseModel):
    """
    Receipt binding a user to a prediction.

    A `trial` purchase is the audit record of a free trial view: it grants
    access like `completed` but never counts towards revenue.
    """

    class PaymentMethod(models.TextChoices):
        WALLET = "wallet", "Wallet"
        STRIPE = "stripe", "Stripe"
        PAYPAL = "paypal", "PayPal"
        TRIAL = "trial", "Free trial"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"
        TRIAL = "trial", "Trial"

    # Statuses that entitle the user to view the prediction's numbers.
    ENTITLING_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.TRIAL)

    TRANSITIONS = {
        PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
        PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    }

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="purchases",
    )
    prediction = models.ForeignKey(
        "predictions.Prediction",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases",
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    is_trial_view = models.BooleanField(default=False)
    trial_day = models.DateField(
        null=True,
        blank=True,
        help_text="Local calendar day of a trial grant; one grant per user per day.",
    )
    transaction_id = models.CharField(max_length=100, unique=True)
    download_count = models.PositiveIntegerField(default=0)
    last_downloaded = models.DateTimeField(null=True, blank=True)
    refund_reason = models.CharField(max_length=200, blank=True, default="")
    refunded_at = models.DateTimeField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True, default="")
    gateway_response = models.JSONField(default=dict, blank=True)

    class Meta(BaseModel.Meta):
        constraints = [
            models.UniqueConstraint(
                fields=["user", "prediction"],
                condition=Q(payment_status="completed"),
                name="uniq_completed_purchase",
            ),
            models.UniqueConstraint(
                fields=["user", "prediction"],
                condition=Q(payment_status="trial"),
                name="uniq_trial_purchase",
            ),
            models.UniqueConstraint(
                fields=["user", "trial_day"],
                name="uniq_trial_grant_per_day",
            ),
        ]
        indexes = [
            models.Index(
                fields=["user", "prediction", "payment_status"],
                name="idx_purchase_user_pred_status",
            ),
            models.Index(fields=["payment_status"], name="idx_purchase_status"),
        ]

    def __str__(self):
        return f"Purchase {self.transaction_id} | {self.payment_method} | {self.payment_status}"

    @property
    def is_refunded(self):
        return self.payment_status == self.PaymentStatus.REFUNDED

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.payment_status, set())

    def transition_to(self, new_status):
        """
        Move to `new_status` in memory; the caller saves.

        Raises:
            InvalidTransition: If the state machine does not allow the move.
        """
        if not self.can_transition_to(new_status):
            raise InvalidTransition(
                f"Cannot move purchase {self.transaction_id} "
                f"from {self.payment_status} to {new_status}."
            )
        self.payment_status = new_status
