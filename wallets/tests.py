import threading
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.db import IntegrityError, connection, transaction
from django.db.models import F
from django.test import (
    TestCase,
    TransactionTestCase,
    override_settings,
    skipUnlessDBFeature,
)
from rest_framework.test import APIClient

from wallets.exceptions import InsufficientBalance
from wallets.models import Transaction, Wallet
from wallets.models.transaction import LedgerImmutableError
from wallets.services import WalletService
from wallets.tasks import reconcile_wallet_balances

User = get_user_model()


def make_user(username="alice", **extra):
    return User.objects.create_user(username=username, password="s3cret-pass", **extra)


# ============================================================
# Model Tests
# ============================================================


class WalletModelTest(TestCase):
    def setUp(self):
        self.user = make_user()

    def test_create_wallet(self):
        wallet = Wallet.objects.create(user=self.user)
        self.assertIsNotNone(wallet.uuid)
        self.assertEqual(wallet.balance, Decimal("0.00"))
        self.assertEqual(wallet.currency, "USD")
        self.assertIsNotNone(wallet.created_at)

    def test_wallet_str(self):
        wallet = Wallet.objects.create(user=self.user)
        self.assertIn(str(wallet.uuid), str(wallet))

    def test_negative_balance_rejected_by_database(self):
        wallet = Wallet.objects.create(user=self.user)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Wallet.objects.filter(pk=wallet.pk).update(balance=Decimal("-1.00"))


class TransactionModelTest(TestCase):
    def setUp(self):
        self.wallet = Wallet.objects.create(user=make_user())

    def _entry(self, **kwargs):
        data = {
            "wallet": self.wallet,
            "amount": Decimal("10.00"),
            "transaction_type": Transaction.TransactionType.CREDIT,
            "description": "test",
        }
        data.update(kwargs)
        return Transaction.objects.create(**data)

    def test_entry_cannot_be_modified(self):
        tx = self._entry()
        tx.description = "changed"
        with self.assertRaises(LedgerImmutableError):
            tx.save()

    def test_entry_cannot_be_deleted(self):
        tx = self._entry()
        with self.assertRaises(LedgerImmutableError):
            tx.delete()
        self.assertTrue(Transaction.objects.filter(pk=tx.pk).exists())

    def test_non_positive_amount_rejected_by_database(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                self._entry(amount=Decimal("0.00"))

    def test_affects_balance(self):
        T = Transaction
        self.assertTrue(T.affects_balance(T.TransactionType.CREDIT, T.Status.COMPLETED))
        self.assertFalse(T.affects_balance(T.TransactionType.CREDIT, T.Status.PENDING))
        self.assertTrue(T.affects_balance(T.TransactionType.WITHDRAWAL, T.Status.PENDING))
        self.assertFalse(T.affects_balance(T.TransactionType.PAYMENT, T.Status.FAILED))
        self.assertFalse(T.affects_balance(T.TransactionType.DEBIT, T.Status.CANCELLED))

    def test_ledger_totals(self):
        self._entry(amount=Decimal("50.00"))
        self._entry(amount=Decimal("5.00"), transaction_type=Transaction.TransactionType.BONUS)
        self._entry(
            amount=Decimal("20.00"),
            transaction_type=Transaction.TransactionType.CREDIT,
            status=Transaction.Status.FAILED,
        )
        self._entry(amount=Decimal("10.00"), transaction_type=Transaction.TransactionType.PAYMENT)
        self._entry(
            amount=Decimal("15.00"),
            transaction_type=Transaction.TransactionType.WITHDRAWAL,
            status=Transaction.Status.PENDING,
        )
        self._entry(
            amount=Decimal("7.00"),
            transaction_type=Transaction.TransactionType.WITHDRAWAL,
            status=Transaction.Status.CANCELLED,
        )

        totals = Transaction.ledger_totals(self.wallet)
        self.assertEqual(totals["balance"], Decimal("30.00"))
        self.assertEqual(totals["total_deposited"], Decimal("55.00"))
        self.assertEqual(totals["total_withdrawn"], Decimal("15.00"))


# ============================================================
# Service Tests
# ============================================================


class WalletServiceTest(TestCase):
    def setUp(self):
        self.user = make_user()

    def test_wallet_created_lazily(self):
        self.assertFalse(Wallet.objects.filter(user=self.user).exists())
        wallet = WalletService.get_wallet(self.user)
        self.assertEqual(wallet.balance, Decimal("0.00"))
        self.assertEqual(WalletService.get_wallet(self.user).pk, wallet.pk)

    def test_deposit_success(self):
        wallet = WalletService.deposit(self.user, Decimal("25.00"), reference="REF-1")

        self.assertEqual(wallet.balance, Decimal("25.00"))
        self.assertEqual(wallet.total_deposited, Decimal("25.00"))
        self.assertIsNotNone(wallet.last_transaction_at)
        tx = wallet.transactions.get()
        self.assertEqual(tx.transaction_type, "credit")
        self.assertEqual(tx.status, "completed")
        self.assertEqual(tx.reference, "REF-1")

    def test_deposit_zero_amount_raises(self):
        with self.assertRaises(ValueError):
            WalletService.deposit(self.user, Decimal("0"))
        self.assertEqual(Transaction.objects.count(), 0)

    def test_deposit_negative_amount_raises(self):
        with self.assertRaises(ValueError):
            WalletService.deposit(self.user, Decimal("-5"))

    def test_withdraw_holds_funds_while_pending(self):
        WalletService.deposit(self.user, Decimal("40.00"))
        wallet = WalletService.withdraw(self.user, Decimal("15.00"))

        self.assertEqual(wallet.balance, Decimal("25.00"))
        self.assertEqual(wallet.total_withdrawn, Decimal("15.00"))
        tx = wallet.transactions.filter(transaction_type="withdrawal").get()
        self.assertEqual(tx.status, "pending")

    def test_withdraw_insufficient_balance(self):
        WalletService.deposit(self.user, Decimal("10.00"))

        with self.assertRaises(InsufficientBalance) as ctx:
            WalletService.withdraw(self.user, Decimal("10.01"))

        self.assertEqual(ctx.exception.code, "insufficient_balance")
        wallet = WalletService.get_wallet(self.user)
        self.assertEqual(wallet.balance, Decimal("10.00"))
        self.assertEqual(wallet.transactions.count(), 1)

    def test_pay_success(self):
        WalletService.deposit(self.user, Decimal("10.00"))
        wallet = WalletService.pay(self.user, Decimal("4.50"), "Subscription")

        self.assertEqual(wallet.balance, Decimal("5.50"))
        # Payments are spending, not withdrawals.
        self.assertEqual(wallet.total_withdrawn, Decimal("0.00"))

    def test_pay_insufficient_balance(self):
        with self.assertRaises(InsufficientBalance):
            WalletService.pay(self.user, Decimal("1.00"), "Subscription")
        self.assertEqual(WalletService.get_wallet(self.user).transactions.count(), 0)

    def test_debit_counts_as_withdrawn(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        wallet = WalletService.debit(self.user, Decimal("2.00"), "Prediction")
        self.assertEqual(wallet.balance, Decimal("3.00"))
        self.assertEqual(wallet.total_withdrawn, Decimal("2.00"))

    def test_bonus_counts_as_deposit(self):
        wallet = WalletService.bonus(self.user, Decimal("3.00"), "Welcome bonus")
        self.assertEqual(wallet.balance, Decimal("3.00"))
        self.assertEqual(wallet.total_deposited, Decimal("3.00"))

    def test_refund_offsets_debit(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        WalletService.debit(self.user, Decimal("2.00"), "Prediction")
        wallet = WalletService.refund(self.user, Decimal("2.00"), "Refund")

        self.assertEqual(wallet.balance, Decimal("5.00"))
        self.assertEqual(
            list(wallet.transactions.values_list("transaction_type", flat=True)),
            ["refund", "debit", "credit"],
        )

    def test_balance_never_negative_over_sequence(self):
        operations = [
            (WalletService.deposit, "20.00"),
            (WalletService.pay, "15.00"),
            (WalletService.withdraw, "10.00"),
            (WalletService.deposit, "3.00"),
            (WalletService.withdraw, "8.00"),
            (WalletService.pay, "8.01"),
            (WalletService.pay, "8.00"),
        ]
        for operation, amount in operations:
            try:
                if operation is WalletService.pay:
                    wallet = operation(self.user, Decimal(amount), "Spend")
                else:
                    wallet = operation(self.user, Decimal(amount))
            except InsufficientBalance:
                wallet = WalletService.get_wallet(self.user)
            self.assertGreaterEqual(wallet.balance, Decimal("0.00"))

        self.assertEqual(wallet.balance, Decimal("0.00"))
        self.assertEqual(Transaction.ledger_totals(wallet)["balance"], wallet.balance)

    def test_conservation(self):
        WalletService.deposit(self.user, Decimal("30.00"))
        WalletService.bonus(self.user, Decimal("5.00"), "Promo")
        WalletService.pay(self.user, Decimal("7.25"), "Spend")
        WalletService.debit(self.user, Decimal("2.00"), "Prediction")
        wallet = WalletService.withdraw(self.user, Decimal("10.00"))

        expected = Decimal("30.00") + Decimal("5.00") - Decimal("7.25") - Decimal("2.00") - Decimal("10.00")
        self.assertEqual(wallet.balance, expected)
        self.assertEqual(Transaction.ledger_totals(wallet)["balance"], expected)


class WalletReconcileTest(TestCase):
    def setUp(self):
        self.user = make_user()
        WalletService.deposit(self.user, Decimal("12.00"))
        self.wallet = WalletService.get_wallet(self.user)

    def test_reconcile_no_drift(self):
        wallet, drift, repaired = WalletService.reconcile(self.wallet.pk)
        self.assertEqual(drift, Decimal("0.00"))
        self.assertFalse(repaired)
        self.assertEqual(wallet.balance, Decimal("12.00"))

    def test_reconcile_repairs_drift(self):
        Wallet.objects.filter(pk=self.wallet.pk).update(balance=Decimal("99.00"))

        wallet, drift, repaired = WalletService.reconcile(self.wallet.pk)

        self.assertEqual(drift, Decimal("87.00"))
        self.assertTrue(repaired)
        self.assertEqual(wallet.balance, Decimal("12.00"))

    def test_reconcile_repairs_totals_only_drift(self):
        Wallet.objects.filter(pk=self.wallet.pk).update(
            total_deposited=Decimal("99.00"), total_withdrawn=Decimal("3.00")
        )

        wallet, drift, repaired = WalletService.reconcile(self.wallet.pk)

        self.assertEqual(drift, Decimal("0.00"))
        self.assertTrue(repaired)
        self.assertEqual(wallet.total_deposited, Decimal("12.00"))
        self.assertEqual(wallet.total_withdrawn, Decimal("0.00"))

    def test_reconcile_task(self):
        other = make_user("bob")
        WalletService.deposit(other, Decimal("1.00"))
        WalletService.get_wallet(make_user("carol"))
        Wallet.objects.filter(pk=self.wallet.pk).update(total_deposited=Decimal("0.00"))
        Wallet.objects.filter(user=other).update(balance=Decimal("4.00"))

        result = reconcile_wallet_balances.apply().get()

        self.assertEqual(result, {"checked": 3, "repaired": 2})
        self.assertEqual(WalletService.get_wallet(other).balance, Decimal("1.00"))
        self.assertEqual(
            WalletService.get_wallet(self.user).total_deposited, Decimal("12.00")
        )

    def test_reconcile_command(self):
        Wallet.objects.filter(pk=self.wallet.pk).update(balance=Decimal("2.00"))
        out = StringIO()

        call_command("reconcile_wallets", stdout=out)

        self.assertIn("Repaired 1 wallet(s).", out.getvalue())
        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("12.00"))

    def test_reconcile_command_reports_totals_drift(self):
        Wallet.objects.filter(pk=self.wallet.pk).update(total_deposited=Decimal("99.00"))
        out = StringIO()

        call_command("reconcile_wallets", stdout=out)

        self.assertIn("deposited 99.00 -> 12.00", out.getvalue())
        self.assertIn("Repaired 1 wallet(s).", out.getvalue())
        self.assertNotIn("All wallets match", out.getvalue())
        self.assertEqual(
            WalletService.get_wallet(self.user).total_deposited, Decimal("12.00")
        )

    def test_reconcile_command_for_one_user(self):
        out = StringIO()
        call_command("reconcile_wallets", "--user", str(self.user.pk), stdout=out)
        self.assertIn("All wallets match their ledgers.", out.getvalue())


class WalletConcurrencyTest(TransactionTestCase):
    """Debits against one wallet are serialized on the wallet row."""

    def setUp(self):
        self.user = make_user()
        WalletService.deposit(self.user, Decimal("5.00"))

    def test_debit_after_competing_debit_committed(self):
        stale = WalletService.get_wallet(self.user)

        WalletService.debit(self.user, Decimal("3.00"), "First")
        # The caller still holds a snapshot showing 5.00; the service must
        # re-read the locked row instead.
        self.assertEqual(stale.balance, Decimal("5.00"))
        with self.assertRaises(InsufficientBalance):
            WalletService.debit(self.user, Decimal("3.00"), "Second")

        wallet = WalletService.get_wallet(self.user)
        self.assertEqual(wallet.balance, Decimal("2.00"))
        self.assertEqual(
            Transaction.objects.filter(transaction_type="debit").count(), 1
        )

    def test_database_rejects_negative_balance(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Wallet.objects.filter(user=self.user).update(
                    balance=F("balance") - Decimal("6.00")
                )
        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("5.00"))

    @skipUnlessDBFeature("has_select_for_update")
    def test_concurrent_debits_never_overdraw(self):
        barrier = threading.Barrier(2)
        outcomes = []

        def attempt():
            barrier.wait()
            try:
                WalletService.debit(self.user, Decimal("3.00"), "Race")
                outcomes.append("debited")
            except InsufficientBalance:
                outcomes.append("rejected")
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ["debited", "rejected"])
        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("2.00"))


# ============================================================
# API Tests
# ============================================================


class WalletAPITest(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_requires_authentication(self):
        response = APIClient().get("/api/wallet/")
        self.assertIn(response.status_code, (401, 403))

    def test_retrieve_wallet(self):
        response = self.client.get("/api/wallet/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["balance"], Decimal("0.00"))

    def test_deposit(self):
        response = self.client.post(
            "/api/wallet/deposit", {"amount": "15.00"}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["wallet"]["balance"], Decimal("15.00"))

    def test_deposit_zero_amount(self):
        response = self.client.post("/api/wallet/deposit", {"amount": "0"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("amount", response.data)

    def test_deposit_missing_amount(self):
        response = self.client.post("/api/wallet/deposit", {}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_withdraw_insufficient_balance(self):
        response = self.client.post(
            "/api/wallet/withdraw", {"amount": "5.00"}, format="json"
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "insufficient_balance")
        self.assertEqual(Transaction.objects.count(), 0)

    def test_payment_requires_description(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        response = self.client.post(
            "/api/wallet/payment", {"amount": "1.00"}, format="json"
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("description", response.data)

    def test_payment(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        response = self.client.post(
            "/api/wallet/payment",
            {"amount": "1.25", "description": "Service fee", "metadata": {"order": 7}},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["wallet"]["balance"], Decimal("3.75"))
        tx = Transaction.objects.get(transaction_type="payment")
        self.assertEqual(tx.metadata, {"order": 7})

    @override_settings(WALLET_TOP_UP_MIN=Decimal("1"), WALLET_TOP_UP_MAX=Decimal("1000"))
    def test_top_up(self):
        response = self.client.post(
            "/api/wallet/top-up",
            {"amount": "50.00", "payment_method": "stripe"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["amount_added"], Decimal("50.00"))
        tx = Transaction.objects.get()
        self.assertTrue(tx.reference.startswith("TOPUP-"))
        self.assertEqual(tx.metadata, {"payment_method": "stripe"})

    @override_settings(WALLET_TOP_UP_MIN=Decimal("1"), WALLET_TOP_UP_MAX=Decimal("1000"))
    def test_top_up_out_of_bounds(self):
        for amount in ("0.50", "1000.01"):
            response = self.client.post(
                "/api/wallet/top-up",
                {"amount": amount, "payment_method": "paypal"},
                format="json",
            )
            self.assertEqual(response.status_code, 400)
        self.assertEqual(Transaction.objects.count(), 0)

    def test_bonus_requires_admin(self):
        response = self.client.post(
            f"/api/wallet/users/{self.user.pk}/bonus",
            {"amount": "5.00", "description": "Promo"},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_admin_bonus(self):
        admin = make_user("admin", is_staff=True)
        client = APIClient()
        client.force_authenticate(admin)

        response = client.post(
            f"/api/wallet/users/{self.user.pk}/bonus",
            {"amount": "5.00", "description": "Promo"},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("5.00"))

    def test_stats(self):
        WalletService.deposit(self.user, Decimal("20.00"))
        WalletService.pay(self.user, Decimal("5.00"), "Spend")

        response = self.client.get("/api/wallet/stats/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["current_balance"], Decimal("15.00"))
        self.assertEqual(response.data["transaction_count"], 2)
        self.assertEqual(response.data["this_month"], 2)
        self.assertEqual(len(response.data["recent_transactions"]), 2)


class TransactionAPITest(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client = APIClient()
        self.client.force_authenticate(self.user)
        WalletService.deposit(self.user, Decimal("10.00"))
        WalletService.withdraw(self.user, Decimal("4.00"))

    def test_list_transactions(self):
        response = self.client.get("/api/wallet/transactions/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 2)

    def test_filter_by_status(self):
        response = self.client.get("/api/wallet/transactions/?status=PENDING")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["transaction_type"], "withdrawal")

    def test_filter_by_type(self):
        response = self.client.get("/api/wallet/transactions/?type=credit")
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["amount"], Decimal("10.00"))

    def test_retrieve_transaction(self):
        tx = Transaction.objects.filter(transaction_type="credit").get()
        response = self.client.get(f"/api/wallet/transactions/{tx.id}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["id"], tx.id)

    def test_other_users_transactions_hidden(self):
        other = make_user("bob")
        WalletService.deposit(other, Decimal("1.00"))
        tx = Transaction.objects.get(wallet__user=other)

        response = self.client.get(f"/api/wallet/transactions/{tx.id}/")

        self.assertEqual(response.status_code, 404)


class RequestLoggingMiddlewareTest(TestCase):
    def test_redacts_sensitive_fields(self):
        from config.middleware import redact_body

        logged = redact_body('{"username": "alice", "password": "hunter22"}')
        self.assertIn("alice", logged)
        self.assertNotIn("hunter22", logged)

    def test_logs_api_calls(self):
        with self.assertLogs("config.middleware", level="INFO") as logs:
            APIClient().post(
                "/api/wallet/deposit",
                {"amount": "1.00", "password": "hunter22"},
                format="json",
            )
        self.assertIn("POST /api/wallet/deposit", logs.output[0])
        self.assertNotIn("hunter22", logs.output[0])
