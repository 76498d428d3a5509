from decimal import Decimal

from django.db import models
from django.db.models import DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce

from wallets.models.base import BaseModel
from wallets.models.wallet import Wallet


class LedgerImmutableError(Exception):
    """Raised on any attempt to modify or delete a recorded ledger entry."""


class Transaction(BaseModel):
    """
    One append-only entry of a wallet ledger.

    Credit-like entries (credit, refund, bonus) count towards the balance
    once COMPLETED. Debit-like entries (debit, payment, withdrawal) reduce it
    while PENDING or COMPLETED: a pending withdrawal holds its funds until it
    is approved outside this system. FAILED and CANCELLED entries never
    affect the balance.
    """

    class TransactionType(models.TextChoices):
        CREDIT = "credit", "Credit"
        DEBIT = "debit", "Debit"
        REFUND = "refund", "Refund"
        PAYMENT = "payment", "Payment"
        BONUS = "bonus", "Bonus"
        WITHDRAWAL = "withdrawal", "Withdrawal"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        CANCELLED = "cancelled", "Cancelled"

    CREDIT_TYPES = (
        TransactionType.CREDIT,
        TransactionType.REFUND,
        TransactionType.BONUS,
    )
    DEBIT_TYPES = (
        TransactionType.DEBIT,
        TransactionType.PAYMENT,
        TransactionType.WITHDRAWAL,
    )
    # Types that feed the wallet's total_withdrawn counter.
    WITHDRAWN_TYPES = (TransactionType.DEBIT, TransactionType.WITHDRAWAL)
    HOLDING_STATUSES = (Status.PENDING, Status.COMPLETED)

    wallet = models.ForeignKey(
        Wallet,
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    transaction_type = models.CharField(
        max_length=12,
        choices=TransactionType.choices,
    )
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.COMPLETED,
    )
    description = models.CharField(max_length=255)
    reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="External reference such as a purchase transaction id.",
    )
    metadata = models.JSONField(default=dict, blank=True)

    class Meta(BaseModel.Meta):
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["wallet", "status"], name="idx_tx_wallet_status"),
            models.Index(
                fields=["wallet", "transaction_type"], name="idx_tx_wallet_type"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="transaction_amount_positive",
            ),
        ]

    def __str__(self):
        return (
            f"Transaction {self.id} | {self.transaction_type} | "
            f"{self.amount} | {self.status}"
        )

    @property
    def is_credit(self):
        return self.transaction_type in self.CREDIT_TYPES

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgerImmutableError(
                f"Ledger transaction {self.pk} cannot be modified."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutableError(f"Ledger transaction {self.pk} cannot be deleted.")

    @classmethod
    def affects_balance(cls, transaction_type, status):
        if transaction_type in cls.CREDIT_TYPES:
            return status == cls.Status.COMPLETED
        return status in cls.HOLDING_STATUSES

    @classmethod
    def ledger_totals(cls, wallet):
        """
        Recompute a wallet's aggregates from its ledger.

        Returns a dict with `balance`, `total_deposited` and `total_withdrawn`.
        """

        def total(condition):
            return Coalesce(
                Sum("amount", filter=condition),
                Value(Decimal("0.00")),
                output_field=DecimalField(max_digits=12, decimal_places=2),
            )

        credited = Q(
            transaction_type__in=cls.CREDIT_TYPES, status=cls.Status.COMPLETED
        )
        debited = Q(
            transaction_type__in=cls.DEBIT_TYPES, status__in=cls.HOLDING_STATUSES
        )
        withdrawn = Q(
            transaction_type__in=cls.WITHDRAWN_TYPES,
            status__in=cls.HOLDING_STATUSES,
        )
        totals = cls.objects.filter(wallet=wallet).aggregate(
            credited=total(credited),
            debited=total(debited),
            withdrawn=total(withdrawn),
        )
        return {
            "balance": totals["credited"] - totals["debited"],
            "total_deposited": totals["credited"],
            "total_withdrawn": totals["withdrawn"],
        }
