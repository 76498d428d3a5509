import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from wallets.exceptions import InsufficientBalance
from wallets.models import Transaction, Wallet

logger = logging.getLogger(__name__)


class WalletService:
    """
    Appends ledger entries and keeps the wallet aggregates in step.

    Every mutation runs in one atomic block that locks the wallet row with
    select_for_update(), so concurrent debits for the same user are
    serialized and the balance check cannot race with another append.
    """

    @staticmethod
    def get_wallet(user) -> Wallet:
        """Return the user's wallet, creating an empty one on first access."""
        wallet, created = Wallet.objects.get_or_create(user=user)
        if created:
            logger.info("Wallet created: user=%s wallet=%s", user.pk, wallet.uuid)
        return wallet

    @staticmethod
    def _lock_wallet(user) -> Wallet:
        WalletService.get_wallet(user)
        return Wallet.objects.select_for_update().get(user=user)

    @staticmethod
    def _append(
        user,
        transaction_type: str,
        amount,
        description: str,
        status: str = Transaction.Status.COMPLETED,
        reference: str = "",
        metadata: dict = None,
    ) -> Wallet:
        """
        Append one entry and apply its effect to the wallet aggregates.

        Must be called inside an atomic block.

        Raises:
            ValueError: If amount is not positive.
            InsufficientBalance: If a debit-like entry exceeds the balance.
                Nothing is written in that case.
        """
        amount = Decimal(amount)
        if amount <= 0:
            raise ValueError("Amount must be positive.")

        wallet = WalletService._lock_wallet(user)
        is_credit = transaction_type in Transaction.CREDIT_TYPES

        if not is_credit and wallet.balance < amount:
            logger.warning(
                "Insufficient balance: wallet=%s balance=%s amount=%s type=%s",
                wallet.uuid,
                wallet.balance,
                amount,
                transaction_type,
            )
            raise InsufficientBalance(wallet.balance, amount)

        tx = Transaction.objects.create(
            wallet=wallet,
            amount=amount,
            transaction_type=transaction_type,
            status=status,
            description=description,
            reference=reference or "",
            metadata=metadata or {},
        )

        updates = {"last_transaction_at": timezone.now()}
        if Transaction.affects_balance(transaction_type, status):
            delta = amount if is_credit else -amount
            updates["balance"] = F("balance") + delta
        if is_credit and status == Transaction.Status.COMPLETED:
            updates["total_deposited"] = F("total_deposited") + amount
        elif transaction_type in Transaction.WITHDRAWN_TYPES:
            updates["total_withdrawn"] = F("total_withdrawn") + amount

        # F() expressions keep the update atomic at the database level
        Wallet.objects.filter(pk=wallet.pk).update(**updates)
        wallet.refresh_from_db()

        logger.info(
            "Ledger entry appended: wallet=%s type=%s status=%s amount=%s "
            "new_balance=%s tx=%d reference=%s",
            wallet.uuid,
            transaction_type,
            status,
            amount,
            wallet.balance,
            tx.id,
            reference,
        )
        return wallet

    @staticmethod
    @transaction.atomic
    def deposit(user, amount, description="Wallet deposit", reference="", metadata=None):
        """
        Credit the wallet with a completed `credit` entry.

        Returns:
            The updated Wallet.

        Raises:
            ValueError: If amount is not positive.
        """
        return WalletService._append(
            user,
            Transaction.TransactionType.CREDIT,
            amount,
            description,
            reference=reference,
            metadata=metadata,
        )

    @staticmethod
    @transaction.atomic
    def withdraw(user, amount, description="Wallet withdrawal", reference="", metadata=None):
        """
        Request a withdrawal.

        The entry is recorded as PENDING (approval happens out of band) and
        the funds are held immediately.

        Raises:
            ValueError: If amount is not positive.
            InsufficientBalance: If amount exceeds the current balance.
        """
        return WalletService._append(
            user,
            Transaction.TransactionType.WITHDRAWAL,
            amount,
            description,
            status=Transaction.Status.PENDING,
            reference=reference,
            metadata=metadata,
        )

    @staticmethod
    @transaction.atomic
    def pay(user, amount, description, reference="", metadata=None):
        """Spend from the wallet with a completed `payment` entry."""
        return WalletService._append(
            user,
            Transaction.TransactionType.PAYMENT,
            amount,
            description,
            reference=reference,
            metadata=metadata,
        )

    @staticmethod
    @transaction.atomic
    def debit(user, amount, description, reference="", metadata=None):
        """Charge an in-app purchase with a completed `debit` entry."""
        return WalletService._append(
            user,
            Transaction.TransactionType.DEBIT,
            amount,
            description,
            reference=reference,
            metadata=metadata,
        )

    @staticmethod
    @transaction.atomic
    def bonus(user, amount, description, reference="", metadata=None):
        """Grant promotional credit; counts towards total_deposited."""
        return WalletService._append(
            user,
            Transaction.TransactionType.BONUS,
            amount,
            description,
            reference=reference,
            metadata=metadata,
        )

    @staticmethod
    @transaction.atomic
    def refund(user, amount, description, reference="", metadata=None):
        """Offset an earlier debit with a completed `refund` entry."""
        return WalletService._append(
            user,
            Transaction.TransactionType.REFUND,
            amount,
            description,
            reference=reference,
            metadata=metadata,
        )

    @staticmethod
    @transaction.atomic
    def reconcile(wallet_id: int):
        """
        Recompute a wallet's aggregates from its ledger and repair drift.

        Returns:
            Tuple of (wallet, drift, repaired). drift is the cached balance
            minus the ledger balance before repair; repaired is True when any
            aggregate, balance or totals, was rewritten.
        """
        wallet = Wallet.objects.select_for_update().get(pk=wallet_id)
        totals = Transaction.ledger_totals(wallet)
        drift = wallet.balance - totals["balance"]
        repaired = any(getattr(wallet, field) != value for field, value in totals.items())

        if repaired:
            logger.warning(
                "Wallet drift repaired: wallet=%s cached_balance=%s ledger_balance=%s "
                "cached_deposited=%s ledger_deposited=%s "
                "cached_withdrawn=%s ledger_withdrawn=%s",
                wallet.uuid,
                wallet.balance,
                totals["balance"],
                wallet.total_deposited,
                totals["total_deposited"],
                wallet.total_withdrawn,
                totals["total_withdrawn"],
            )
            Wallet.objects.filter(pk=wallet.pk).update(**totals)
            wallet.refresh_from_db()

        return wallet, drift, repaired
