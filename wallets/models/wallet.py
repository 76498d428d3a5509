import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

from wallets.models.base import BaseModel

ZERO = Decimal("0.00")


class Wallet(BaseModel):
    """
    A user's internal credit balance.

    `balance`, `total_deposited` and `total_withdrawn` are aggregates of the
    wallet's transaction ledger, updated in the same database transaction
    that appends each entry. Concurrency safety is handled at the service
    layer via select_for_update() and F() expressions.
    """

    class Currency(models.TextChoices):
        USD = "USD", "US Dollar"
        EUR = "EUR", "Euro"
        GBP = "GBP", "Pound Sterling"
        CAD = "CAD", "Canadian Dollar"

    uuid = models.UUIDField(
        default=uuid.uuid4, unique=True, editable=False, db_index=True
    )
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wallet",
    )
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    currency = models.CharField(
        max_length=3,
        choices=Currency.choices,
        default=Currency.USD,
    )
    is_active = models.BooleanField(default=True)
    total_deposited = models.DecimalField(
        max_digits=12, decimal_places=2, default=ZERO
    )
    total_withdrawn = models.DecimalField(
        max_digits=12, decimal_places=2, default=ZERO
    )
    last_transaction_at = models.DateTimeField(null=True, blank=True)

    class Meta(BaseModel.Meta):
        constraints = [
            models.CheckConstraint(
                condition=models.Q(balance__gte=0),
                name="wallet_balance_non_negative",
            ),
        ]

    def __str__(self):
        return f"Wallet {self.uuid} (user={self.user_id}, balance={self.balance})"
