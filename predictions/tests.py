import threading
from datetime import datetime, timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import MagicMock, patch

import requests
from django.contrib.auth import get_user_model
from django.core.management import CommandError, call_command
from django.db import connection
from django.test import (
    TestCase,
    TransactionTestCase,
    override_settings,
    skipUnlessDBFeature,
)
from django.utils import timezone
from rest_framework.test import APIClient

from predictions.catalog import LOTTERIES, get_lottery
from predictions.derivation import (
    derive_viable,
    legacy_to_non_viable,
    viable_numbers_for,
)
from predictions.exceptions import (
    AccessDenied,
    AlreadyPurchased,
    InvalidTransition,
    LotteryMismatch,
    UnknownLottery,
)
from predictions.models import Prediction, Profile, Purchase, Result
from predictions.services import (
    AccessService,
    AccountService,
    NotificationService,
    PredictionService,
    PurchaseService,
)
from predictions.tasks import notify_lottery_subscribers, subscribers_of
from predictions.utils import normalize_phone_number, send_sms
from wallets.exceptions import InsufficientBalance
from wallets.models import Transaction
from wallets.services import WalletService

User = get_user_model()


def local(*args):
    """An aware datetime in the project time zone."""
    return timezone.make_aware(datetime(*args))


def make_user(username="alice", lottery="powerball", trial=True, phone="", **extra):
    user = User.objects.create_user(username=username, password="s3cret-pass", **extra)
    now = timezone.now()
    Profile.objects.create(
        user=user,
        phone=phone,
        selected_lottery=lottery,
        trial_start=now - timedelta(hours=1) if trial else None,
        trial_end=now + timedelta(days=6) if trial else None,
    )
    return user


def make_prediction(lottery="powerball", **kwargs):
    definition = get_lottery(lottery)
    data = {
        "lottery_code": definition.code,
        "draw_date": timezone.localdate() + timedelta(days=1),
        "draw_time": "20:00",
        "price": definition.price,
        "non_viable_primary": [1, 2, 3],
        "non_viable_secondary": [10] if definition.is_double else [],
    }
    data.update(kwargs)
    return Prediction.objects.create(**data)


# ============================================================
# Catalog & Derivation Tests
# ============================================================


class CatalogTest(TestCase):
    def test_lookup_is_case_insensitive(self):
        self.assertEqual(get_lottery("PowerBall").code, "powerball")

    def test_unknown_lottery(self):
        with self.assertRaises(UnknownLottery) as ctx:
            get_lottery("euromillions")
        self.assertEqual(ctx.exception.code, "invalid_lottery")

    def test_ranges(self):
        powerball = get_lottery("powerball")
        self.assertTrue(powerball.is_double)
        self.assertEqual((powerball.primary.low, powerball.primary.high), (1, 69))
        self.assertEqual((powerball.secondary.low, powerball.secondary.high), (1, 26))
        self.assertFalse(get_lottery("gopher5").is_double)
        self.assertEqual(get_lottery("pick3").primary.size, 10)

    def test_next_draw(self):
        # 2026-03-10 is a Tuesday.
        self.assertEqual(
            get_lottery("powerball").next_draw(local(2026, 3, 10, 10, 0)),
            local(2026, 3, 11, 20, 59),
        )
        self.assertEqual(
            get_lottery("pick3").next_draw(local(2026, 3, 10, 17, 0)),
            local(2026, 3, 10, 18, 0),
        )
        # Strictly after: a draw happening right now is not "next".
        self.assertEqual(
            get_lottery("pick3").next_draw(local(2026, 3, 10, 18, 0)),
            local(2026, 3, 11, 18, 0),
        )


class DerivationTest(TestCase):
    def test_double_range_complement(self):
        viable = derive_viable("powerball", [1, 2, 3], [10])

        self.assertEqual(viable.primary, tuple(range(4, 70)))
        self.assertEqual(len(viable.primary), 66)
        self.assertEqual(viable.secondary, tuple(list(range(1, 10)) + list(range(11, 27))))
        self.assertEqual(len(viable.secondary), 25)

    def test_single_range_ignores_secondary(self):
        viable = derive_viable("gopher5", [47], [1, 2])
        self.assertEqual(viable.primary, tuple(range(1, 47)))
        self.assertIsNone(viable.secondary)

    def test_digit_game_starts_at_zero(self):
        viable = derive_viable("pick3", [0, 5, 9])
        self.assertEqual(viable.primary, (1, 2, 3, 4, 6, 7, 8))

    def test_out_of_range_input_is_ignored(self):
        self.assertEqual(
            derive_viable("gopher5", [0, 48, 100, -3, 5]),
            derive_viable("gopher5", [5]),
        )

    def test_complement_property_for_every_lottery(self):
        for code, lottery in LOTTERIES.items():
            primary_in = [n for n in lottery.primary.numbers() if n % 3 == 0]
            secondary_in = (
                [n for n in lottery.secondary.numbers() if n % 2 == 0]
                if lottery.is_double
                else []
            )
            viable = derive_viable(code, primary_in + [500], secondary_in + [-1])

            self.assertFalse(set(viable.primary) & set(primary_in), code)
            self.assertEqual(
                set(viable.primary) | set(primary_in),
                set(lottery.primary.numbers()),
                code,
            )
            self.assertEqual(list(viable.primary), sorted(viable.primary))
            if lottery.is_double:
                self.assertFalse(set(viable.secondary) & set(secondary_in), code)
                self.assertEqual(
                    set(viable.secondary) | set(secondary_in),
                    set(lottery.secondary.numbers()),
                    code,
                )

    def test_idempotent(self):
        first = derive_viable("megamillion", [70, 1, 33], [25, 3])
        second = derive_viable("megamillion", [70, 1, 33], [25, 3])
        self.assertEqual(first, second)
        self.assertEqual(first.as_dict(), second.as_dict())

    def test_non_viable_takes_precedence_over_legacy(self):
        prediction = make_prediction(
            "powerball",
            non_viable_primary=[1, 2, 3],
            non_viable_secondary=[10],
            legacy_viable_primary=[7, 8, 9, 10, 11],
            legacy_viable_secondary=[4],
        )
        self.assertEqual(
            viable_numbers_for(prediction), derive_viable("powerball", [1, 2, 3], [10])
        )

    def test_legacy_viable_used_when_no_non_viable(self):
        prediction = make_prediction(
            "powerball",
            non_viable_primary=[],
            non_viable_secondary=[],
            legacy_viable_primary=[9, 7, 70, 7],
            legacy_viable_secondary=[4],
        )
        viable = viable_numbers_for(prediction)
        self.assertEqual(viable.primary, (7, 9))
        self.assertEqual(viable.secondary, (4,))

    def test_no_numbers_means_no_recommendation(self):
        prediction = make_prediction(
            "gopher5", non_viable_primary=[], non_viable_secondary=[]
        )
        viable = viable_numbers_for(prediction)
        self.assertFalse(viable.available)
        self.assertIsNone(viable.as_dict())

    def test_legacy_to_non_viable(self):
        primary, secondary = legacy_to_non_viable("lottoamerica", range(1, 51), [1, 2])
        self.assertEqual(primary, [51, 52])
        self.assertEqual(secondary, list(range(3, 11)))

        primary, secondary = legacy_to_non_viable("pick3", [0, 1, 2, 3, 4])
        self.assertEqual(primary, [5, 6, 7, 8, 9])
        self.assertEqual(secondary, [])


# ============================================================
# Model Tests
# ============================================================


class PurchaseModelTest(TestCase):
    def setUp(self):
        self.purchase = Purchase.objects.create(
            user=make_user(),
            prediction=make_prediction(),
            amount=Decimal("2.00"),
            payment_method=Purchase.PaymentMethod.STRIPE,
            transaction_id="PRED-1",
        )

    def test_defaults_to_pending(self):
        self.assertEqual(self.purchase.payment_status, "pending")
        self.assertFalse(self.purchase.is_refunded)

    def test_allowed_transitions(self):
        self.purchase.transition_to(Purchase.PaymentStatus.COMPLETED)
        self.purchase.transition_to(Purchase.PaymentStatus.REFUNDED)
        self.assertTrue(self.purchase.is_refunded)

    def test_refunded_is_terminal(self):
        self.purchase.payment_status = Purchase.PaymentStatus.REFUNDED
        with self.assertRaises(InvalidTransition):
            self.purchase.transition_to(Purchase.PaymentStatus.COMPLETED)

    def test_pending_cannot_be_refunded(self):
        with self.assertRaises(InvalidTransition):
            self.purchase.transition_to(Purchase.PaymentStatus.REFUNDED)


class ProfileModelTest(TestCase):
    def test_wallet_balance_reads_ledger(self):
        user = make_user()
        WalletService.deposit(user, Decimal("8.00"))
        self.assertEqual(user.profile.wallet_balance, Decimal("8.00"))

    def test_role(self):
        self.assertEqual(make_user().profile.role, "user")
        self.assertEqual(make_user("root", is_staff=True).profile.role, "admin")


# ============================================================
# Entitlement Tests
# ============================================================


class TrialStatusTest(TestCase):
    def test_inside_window(self):
        profile = Profile(
            trial_start=local(2026, 3, 1, 9, 0), trial_end=local(2026, 3, 8, 9, 0)
        )
        status = AccessService.trial_status(profile, local(2026, 3, 5, 12, 0))
        self.assertTrue(status.active)
        self.assertEqual(status.days_remaining, 3)

    def test_window_is_inclusive(self):
        profile = Profile(
            trial_start=local(2026, 3, 1, 9, 0), trial_end=local(2026, 3, 8, 9, 0)
        )
        self.assertTrue(AccessService.trial_status(profile, local(2026, 3, 1, 9, 0)).active)
        self.assertTrue(AccessService.trial_status(profile, local(2026, 3, 8, 9, 0)).active)

    def test_expired(self):
        profile = Profile(
            trial_start=local(2026, 3, 1, 9, 0), trial_end=local(2026, 3, 8, 9, 0)
        )
        status = AccessService.trial_status(profile, local(2026, 3, 8, 9, 1))
        self.assertFalse(status.active)
        self.assertEqual(status.reason, "trial_expired")

    def test_no_trial(self):
        status = AccessService.trial_status(Profile(), local(2026, 3, 8, 9, 1))
        self.assertFalse(status.active)
        self.assertEqual(status.reason, "must_purchase")


class AccessServiceTest(TestCase):
    def setUp(self):
        self.user = make_user(lottery="powerball")
        self.prediction = make_prediction("powerball")

    def assertDenied(self, reason, prediction, **kwargs):
        with self.assertRaises(AccessDenied) as ctx:
            AccessService.open_prediction(self.user, prediction, **kwargs)
        self.assertEqual(ctx.exception.code, reason)

    def test_first_trial_view_is_granted(self):
        grant = AccessService.open_prediction(self.user, self.prediction)

        self.assertEqual(grant.via, "trial")
        self.assertTrue(grant.newly_granted)
        self.assertEqual(grant.viable.primary, tuple(range(4, 70)))
        purchase = Purchase.objects.get(user=self.user)
        self.assertEqual(purchase.payment_status, "trial")
        self.assertEqual(purchase.payment_method, "trial")
        self.assertTrue(purchase.is_trial_view)
        self.assertEqual(purchase.amount, Decimal("0.00"))
        self.assertEqual(purchase.download_count, 1)
        self.user.profile.refresh_from_db()
        self.assertIsNotNone(self.user.profile.last_trial_prediction_at)
        self.prediction.refresh_from_db()
        self.assertEqual(self.prediction.download_count, 1)

    def test_completed_purchase_grants_without_trial(self):
        profile = self.user.profile
        profile.trial_end = timezone.now() - timedelta(days=1)
        profile.save()
        WalletService.deposit(self.user, Decimal("5.00"))
        PurchaseService.purchase(self.user, self.prediction, "powerball")

        grant = AccessService.open_prediction(self.user, self.prediction)

        self.assertEqual(grant.via, "purchased")
        self.assertFalse(grant.newly_granted)
        self.assertEqual(Purchase.objects.filter(user=self.user).count(), 1)

    def test_trial_view_survives_trial_expiry(self):
        AccessService.open_prediction(self.user, self.prediction)
        profile = self.user.profile
        profile.trial_end = timezone.now() - timedelta(minutes=1)
        profile.save()

        grant = AccessService.open_prediction(
            self.user, self.prediction, now=timezone.now() + timedelta(days=10)
        )

        self.assertEqual(grant.via, "trial")
        self.assertFalse(grant.newly_granted)

    def test_lottery_mismatch(self):
        self.assertDenied("lottery_mismatch", make_prediction("gopher5"))
        self.assertFalse(Purchase.objects.exists())

    def test_selected_lottery_compare_is_case_insensitive(self):
        Profile.objects.filter(user=self.user).update(selected_lottery="POWERBALL")
        grant = AccessService.open_prediction(self.user, self.prediction)
        self.assertTrue(grant.newly_granted)

    def test_no_lottery_selected(self):
        Profile.objects.filter(user=self.user).update(selected_lottery="")
        self.assertDenied("no_lottery_selected", self.prediction)

    def test_trial_expired(self):
        Profile.objects.filter(user=self.user).update(
            trial_end=timezone.now() - timedelta(seconds=1)
        )
        self.assertDenied("trial_expired", self.prediction)

    def test_no_trial_must_purchase(self):
        Profile.objects.filter(user=self.user).update(trial_start=None, trial_end=None)
        self.assertDenied("must_purchase", self.prediction)

    def test_user_without_profile_must_purchase(self):
        user = User.objects.create_user(username="legacy", password="s3cret-pass")
        with self.assertRaises(AccessDenied) as ctx:
            AccessService.open_prediction(user, self.prediction)
        self.assertEqual(ctx.exception.code, "must_purchase")

    def test_trial_eligibility_checks_in_order(self):
        profile = self.user.profile
        self.assertTrue(AccessService.trial_eligibility(profile, "POWERBALL").active)
        self.assertEqual(
            AccessService.trial_eligibility(profile, "gopher5").reason, "lottery_mismatch"
        )

        profile.selected_lottery = ""
        self.assertEqual(
            AccessService.trial_eligibility(profile, "gopher5").reason,
            "no_lottery_selected",
        )

        profile.trial_end = timezone.now() - timedelta(seconds=1)
        self.assertEqual(
            AccessService.trial_eligibility(profile, "gopher5").reason, "trial_expired"
        )

    def test_url_lottery_must_match_prediction(self):
        with self.assertRaises(LotteryMismatch):
            AccessService.open_prediction(self.user, self.prediction, lottery_code="gopher5")
        with self.assertRaises(UnknownLottery):
            AccessService.open_prediction(self.user, self.prediction, lottery_code="bingo")
        self.assertFalse(Purchase.objects.exists())

    def test_reviews_count_one_download_per_user(self):
        for _ in range(3):
            AccessService.open_prediction(self.user, self.prediction)

        purchase = Purchase.objects.get(user=self.user)
        self.assertEqual(purchase.download_count, 3)
        self.prediction.refresh_from_db()
        self.assertEqual(self.prediction.download_count, 1)


class TrialScenarioTest(TestCase):
    def test_new_user_trial_for_selected_lottery_only(self):
        user = AccountService.register("newbie", "s3cret-pass", "pick3")
        pick3 = make_prediction("pick3", non_viable_primary=[0, 1])
        powerball = make_prediction("powerball")

        grant = AccessService.open_prediction(user, pick3, lottery_code="pick3")
        self.assertEqual(grant.viable.primary, (2, 3, 4, 5, 6, 7, 8, 9))

        with self.assertRaises(AccessDenied) as ctx:
            AccessService.open_prediction(user, powerball, lottery_code="powerball")
        self.assertEqual(ctx.exception.code, "lottery_mismatch")

    def test_one_new_prediction_per_day(self):
        day1 = local(2026, 3, 10, 10, 0)
        user = make_user(lottery="gopher5")
        Profile.objects.filter(user=user).update(
            trial_start=day1 - timedelta(days=1), trial_end=day1 + timedelta(days=6)
        )
        p = make_prediction("gopher5")
        q = make_prediction("gopher5")

        first = AccessService.open_prediction(user, p, now=day1)
        self.assertTrue(first.newly_granted)

        again = AccessService.open_prediction(user, p, now=day1 + timedelta(hours=3))
        self.assertFalse(again.newly_granted)
        self.assertEqual(Purchase.objects.filter(user=user).count(), 1)
        p.refresh_from_db()
        self.assertEqual(p.download_count, 1)

        with self.assertRaises(AccessDenied) as ctx:
            AccessService.open_prediction(user, q, now=day1 + timedelta(hours=4))
        self.assertEqual(ctx.exception.code, "already_viewed_today")

        day2 = local(2026, 3, 11, 9, 0)
        granted = AccessService.open_prediction(user, q, now=day2)
        self.assertTrue(granted.newly_granted)
        self.assertEqual(
            Purchase.objects.filter(user=user, payment_status="trial").count(), 2
        )

    def test_day_boundary_is_calendar_day(self):
        late = local(2026, 3, 10, 23, 30)
        user = make_user(lottery="gopher5")
        Profile.objects.filter(user=user).update(
            trial_start=late - timedelta(days=1), trial_end=late + timedelta(days=6)
        )

        AccessService.open_prediction(user, make_prediction("gopher5"), now=late)
        # Only an hour later, but a new local day.
        grant = AccessService.open_prediction(
            user, make_prediction("gopher5"), now=late + timedelta(hours=1)
        )
        self.assertTrue(grant.newly_granted)


# ============================================================
# Purchase Tests
# ============================================================


class PurchaseServiceTest(TestCase):
    def setUp(self):
        self.user = make_user(trial=False)
        self.prediction = make_prediction("powerball", price=Decimal("2.00"))

    def test_wallet_purchase_then_insufficient_balance(self):
        WalletService.deposit(self.user, Decimal("5.00"))

        purchase, wallet = PurchaseService.purchase(self.user, self.prediction, "powerball")

        self.assertEqual(wallet.balance, Decimal("3.00"))
        self.assertEqual(purchase.payment_status, "completed")
        self.assertEqual(
            Purchase.objects.filter(user=self.user, payment_status="completed").count(), 1
        )
        debit = Transaction.objects.get(transaction_type="debit")
        self.assertEqual(debit.amount, Decimal("2.00"))
        self.assertEqual(debit.reference, purchase.transaction_id)
        self.prediction.refresh_from_db()
        self.assertEqual(self.prediction.purchase_count, 1)

        expensive = make_prediction("powerball", price=Decimal("10.00"))
        with self.assertRaises(InsufficientBalance):
            PurchaseService.purchase(self.user, expensive, "powerball")

        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("3.00"))
        self.assertEqual(Purchase.objects.filter(user=self.user).count(), 1)
        self.assertEqual(Transaction.objects.filter(transaction_type="debit").count(), 1)

    def test_already_purchased(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        PurchaseService.purchase(self.user, self.prediction, "powerball")

        with self.assertRaises(AlreadyPurchased):
            PurchaseService.purchase(self.user, self.prediction, "powerball")
        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("3.00"))

    def test_trial_view_counts_as_purchased(self):
        user = make_user("trialist", lottery="powerball")
        AccessService.open_prediction(user, self.prediction)
        WalletService.deposit(user, Decimal("5.00"))

        with self.assertRaises(AlreadyPurchased):
            PurchaseService.purchase(user, self.prediction, "powerball")

    def test_lottery_mismatch(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        with self.assertRaises(LotteryMismatch):
            PurchaseService.purchase(self.user, self.prediction, "megamillion")
        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("5.00"))
        self.assertFalse(Purchase.objects.exists())

    def test_inactive_prediction(self):
        self.prediction.is_active = False
        self.prediction.save()
        with self.assertRaises(ValueError):
            PurchaseService.purchase(self.user, self.prediction, "powerball")

    def test_free_prediction_skips_ledger(self):
        free = make_prediction("powerball", price=Decimal("0.00"))
        purchase, wallet = PurchaseService.purchase(self.user, free, "powerball")
        self.assertEqual(purchase.payment_status, "completed")
        self.assertEqual(wallet.balance, Decimal("0.00"))
        self.assertFalse(Transaction.objects.exists())

    def test_gateway_purchase_is_pending(self):
        purchase, wallet = PurchaseService.purchase(
            self.user, self.prediction, "powerball", payment_method="stripe"
        )
        self.assertIsNone(wallet)
        self.assertEqual(purchase.payment_status, "pending")
        self.assertFalse(Transaction.objects.exists())
        with self.assertRaises(AccessDenied):
            AccessService.open_prediction(self.user, self.prediction)

    def test_refund_wallet_purchase(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        purchase, _ = PurchaseService.purchase(self.user, self.prediction, "powerball")

        refunded = PurchaseService.refund(purchase.pk, reason="Draw cancelled")

        self.assertEqual(refunded.payment_status, "refunded")
        self.assertEqual(refunded.refund_reason, "Draw cancelled")
        self.assertIsNotNone(refunded.refunded_at)
        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("5.00"))
        refund = Transaction.objects.get(transaction_type="refund")
        self.assertEqual(refund.reference, purchase.transaction_id)

    def test_refund_releases_purchase_count(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        purchase, _ = PurchaseService.purchase(self.user, self.prediction, "powerball")
        self.prediction.refresh_from_db()
        self.assertEqual(self.prediction.purchase_count, 1)

        PurchaseService.refund(purchase.pk, reason="Draw cancelled")

        self.prediction.refresh_from_db()
        self.assertEqual(self.prediction.purchase_count, 0)

    def test_refund_requires_completed(self):
        purchase, _ = PurchaseService.purchase(
            self.user, self.prediction, "powerball", payment_method="paypal"
        )
        with self.assertRaises(InvalidTransition):
            PurchaseService.refund(purchase.pk)
        purchase.refresh_from_db()
        self.assertEqual(purchase.payment_status, "pending")

    def test_visible_purchases_skip_orphans(self):
        WalletService.deposit(self.user, Decimal("10.00"))
        PurchaseService.purchase(self.user, self.prediction, "powerball")
        doomed = make_prediction("powerball")
        PurchaseService.purchase(self.user, doomed, "powerball")
        doomed.delete()

        visible = list(PurchaseService.visible_purchases(self.user))

        self.assertEqual(Purchase.objects.filter(user=self.user).count(), 2)
        self.assertEqual([p.prediction_id for p in visible], [self.prediction.pk])

    def test_stats_exclude_trials(self):
        WalletService.deposit(self.user, Decimal("20.00"))
        PurchaseService.purchase(self.user, self.prediction, "powerball")
        mega = make_prediction("megamillion")
        refunded, _ = PurchaseService.purchase(self.user, mega, "megamillion")
        PurchaseService.refund(refunded.pk)
        PurchaseService.purchase(
            self.user, make_prediction("gopher5"), "gopher5", payment_method="stripe"
        )
        AccessService.open_prediction(make_user("trialist"), make_prediction("powerball"))

        stats = PurchaseService.stats()

        self.assertEqual(stats["total_revenue"], Decimal("2.00"))
        self.assertEqual(stats["total_refunded"], Decimal("5.00"))
        self.assertEqual(stats["total_purchases"], 3)
        self.assertEqual(stats["completed"], 1)
        self.assertEqual(stats["pending"], 1)
        self.assertEqual(stats["refunded"], 1)
        self.assertEqual(stats["trial_views"], 1)
        self.assertEqual(stats["by_method"]["wallet"]["revenue"], Decimal("2.00"))
        self.assertNotIn("trial", stats["by_method"])

    def test_delete_by_transaction_ids(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        purchase, _ = PurchaseService.purchase(self.user, self.prediction, "powerball")

        deleted = PurchaseService.delete_by_transaction_ids([purchase.transaction_id, "NOPE"])

        self.assertEqual(deleted, 1)
        self.assertFalse(Purchase.objects.exists())
        # Ledger history is untouched.
        self.assertEqual(Transaction.objects.count(), 2)


class EntitlementConcurrencyTest(TransactionTestCase):
    """Purchases and trial grants stay unique when requests overlap."""

    def setUp(self):
        self.user = make_user(lottery="powerball")
        self.prediction = make_prediction("powerball", price=Decimal("2.00"))

    def test_duplicate_completed_purchase_rolls_back_debit(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        PurchaseService.purchase(self.user, self.prediction, "powerball")

        # The duplicate check misses the purchase a concurrent request has
        # just committed; the unique constraint must still reject it.
        with patch.object(Purchase, "ENTITLING_STATUSES", ()):
            with self.assertRaises(AlreadyPurchased):
                PurchaseService.purchase(self.user, self.prediction, "powerball")

        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("3.00"))
        self.assertEqual(Transaction.objects.filter(transaction_type="debit").count(), 1)
        self.assertEqual(
            Purchase.objects.filter(user=self.user, payment_status="completed").count(), 1
        )
        self.prediction.refresh_from_db()
        self.assertEqual(self.prediction.purchase_count, 1)

    def test_lost_profile_update_still_one_trial_per_day(self):
        AccessService.open_prediction(self.user, self.prediction)
        Profile.objects.filter(user=self.user).update(last_trial_prediction_at=None)

        with self.assertRaises(AccessDenied) as ctx:
            AccessService.open_prediction(self.user, make_prediction("powerball"))

        self.assertEqual(ctx.exception.code, "already_viewed_today")
        self.assertEqual(Purchase.objects.filter(user=self.user).count(), 1)

    @skipUnlessDBFeature("has_select_for_update")
    def test_concurrent_trial_grants_allow_one(self):
        predictions = [self.prediction, make_prediction("powerball")]
        barrier = threading.Barrier(len(predictions))
        outcomes = []

        def attempt(prediction):
            barrier.wait()
            try:
                AccessService.open_prediction(self.user, prediction)
                outcomes.append("granted")
            except AccessDenied as exc:
                outcomes.append(exc.code)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(p,)) for p in predictions]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ["already_viewed_today", "granted"])
        self.assertEqual(Purchase.objects.filter(user=self.user).count(), 1)

    @skipUnlessDBFeature("has_select_for_update")
    def test_concurrent_purchases_debit_once(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        barrier = threading.Barrier(2)
        outcomes = []

        def attempt():
            barrier.wait()
            try:
                PurchaseService.purchase(self.user, self.prediction, "powerball")
                outcomes.append("purchased")
            except AlreadyPurchased:
                outcomes.append("already_purchased")
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ["already_purchased", "purchased"])
        self.assertEqual(WalletService.get_wallet(self.user).balance, Decimal("3.00"))


# ============================================================
# Account Tests
# ============================================================


class AccountServiceTest(TestCase):
    @override_settings(TRIAL_PERIOD_DAYS=7)
    def test_register_starts_trial(self):
        now = local(2026, 3, 10, 10, 0)
        user = AccountService.register(
            "newbie", "s3cret-pass", "PICK3", email="n@example.com", now=now
        )

        profile = user.profile
        self.assertEqual(profile.selected_lottery, "pick3")
        self.assertEqual(profile.trial_start, now)
        self.assertEqual(profile.trial_end, now + timedelta(days=7))
        self.assertEqual(user.wallet.balance, Decimal("0.00"))
        self.assertTrue(user.check_password("s3cret-pass"))

    def test_register_unknown_lottery(self):
        with self.assertRaises(UnknownLottery):
            AccountService.register("newbie", "s3cret-pass", "bingo")
        self.assertFalse(User.objects.filter(username="newbie").exists())

    def test_notification_lotteries_limit(self):
        user = make_user()
        profile = AccountService.update_profile(
            user, notification_lotteries=["gopher5", "GOPHER5", "pick3"]
        )
        self.assertEqual(profile.notification_lotteries, ["gopher5", "pick3"])

        with self.assertRaises(ValueError):
            AccountService.update_profile(
                user, notification_lotteries=["gopher5", "pick3", "megamillion"]
            )


# ============================================================
# Notification Tests
# ============================================================


class SmsTest(TestCase):
    def test_normalize_phone_number(self):
        self.assertEqual(normalize_phone_number("(612) 555-0100"), "+16125550100")
        self.assertEqual(normalize_phone_number("+44 20 7946 0000"), "+442079460000")
        self.assertEqual(normalize_phone_number("1-612-555-0100"), "+16125550100")
        self.assertEqual(normalize_phone_number("n/a"), "")
        self.assertEqual(normalize_phone_number(""), "")

    @override_settings(SMS_ACCOUNT_SID="", SMS_AUTH_TOKEN="", SMS_FROM_NUMBER="")
    @patch("predictions.utils.sms.requests.post")
    def test_mock_mode_without_credentials(self, mock_post):
        result = send_sms("612-555-0100", "hello")
        self.assertTrue(result["success"])
        self.assertEqual(result["response"], {"mock": True})
        mock_post.assert_not_called()

    @override_settings(
        SMS_ACCOUNT_SID="AC123", SMS_AUTH_TOKEN="token", SMS_FROM_NUMBER="+15550000000"
    )
    @patch("predictions.utils.sms.requests.post")
    def test_send_success(self, mock_post):
        mock_post.return_value = MagicMock(ok=True, status_code=201)
        mock_post.return_value.json.return_value = {"sid": "SM1"}

        result = send_sms("612-555-0100", "hello")

        self.assertTrue(result["success"])
        args, kwargs = mock_post.call_args
        self.assertTrue(args[0].endswith("/Accounts/AC123/Messages.json"))
        self.assertEqual(kwargs["data"]["To"], "+16125550100")
        self.assertEqual(kwargs["auth"], ("AC123", "token"))

    @override_settings(
        SMS_ACCOUNT_SID="AC123", SMS_AUTH_TOKEN="token", SMS_FROM_NUMBER="+15550000000"
    )
    @patch("predictions.utils.sms.requests.post")
    def test_send_connection_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")
        result = send_sms("612-555-0100", "hello")
        self.assertFalse(result["success"])
        self.assertEqual(result["response"]["error"], "request_error")

    @override_settings(
        SMS_ACCOUNT_SID="AC123", SMS_AUTH_TOKEN="token", SMS_FROM_NUMBER="+15550000000"
    )
    @patch("predictions.utils.sms.requests.post")
    def test_send_invalid_json_response(self, mock_post):
        mock_post.return_value = MagicMock(ok=False, status_code=502)
        mock_post.return_value.json.side_effect = requests.exceptions.JSONDecodeError(
            "Expecting value", "<html>", 0
        )

        result = send_sms("612-555-0100", "hello")

        self.assertFalse(result["success"])
        self.assertEqual(result["response"]["error"], "invalid_response")


class NotificationTaskTest(TestCase):
    def setUp(self):
        self.trial_user = make_user("a", lottery="powerball", phone="6125550101")
        self.extra_user = make_user("b", lottery="pick3", phone="6125550102")
        Profile.objects.filter(user=self.extra_user).update(
            notification_lotteries=["powerball"]
        )
        make_user("c", lottery="powerball", phone="")
        muted = make_user("d", lottery="powerball", phone="6125550104")
        Profile.objects.filter(user=muted).update(prediction_notifications_enabled=False)
        make_user("e", lottery="powerball", phone="6125550105", is_staff=True)
        make_user("f", lottery="gopher5", phone="6125550106")

    def test_subscribers(self):
        users = {profile.user.username for profile in subscribers_of("powerball")}
        self.assertEqual(users, {"a", "b"})

    @patch("predictions.tasks.send_sms")
    def test_fan_out_continues_after_failure(self, mock_send):
        mock_send.side_effect = [
            {"success": False, "response": {"error": "timeout"}},
            {"success": True, "response": {}},
        ]

        result = notify_lottery_subscribers.apply(args=("powerball", "New!")).get()

        self.assertEqual(result["notified"], 1)
        self.assertEqual(result["failed"], 1)
        self.assertEqual(mock_send.call_count, 2)

    def test_dispatched_after_commit(self):
        with patch.object(notify_lottery_subscribers, "delay") as mock_delay:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                PredictionService.create(None, **self._prediction_data())
                mock_delay.assert_not_called()

        self.assertEqual(len(callbacks), 1)
        lottery_code, message = mock_delay.call_args[0]
        self.assertEqual(lottery_code, "powerball")
        self.assertIn("Powerball", message)

    def test_dispatch_failure_is_swallowed(self):
        with patch.object(
            notify_lottery_subscribers, "delay", side_effect=ConnectionError("broker down")
        ):
            with self.captureOnCommitCallbacks(execute=True):
                NotificationService.notify("powerball", "New!")

    def test_result_notification(self):
        prediction = make_prediction("powerball")
        with patch.object(notify_lottery_subscribers, "delay") as mock_delay:
            with self.captureOnCommitCallbacks(execute=True):
                PredictionService.record_result(
                    prediction, None, winning_primary=[1, 2, 3, 4, 5], winning_secondary=[6]
                )
        message = mock_delay.call_args[0][1]
        self.assertIn("1 2 3 4 5 + 6", message)

    def _prediction_data(self):
        return {
            "lottery_code": "powerball",
            "draw_date": timezone.localdate() + timedelta(days=1),
            "draw_time": "20:59",
            "price": Decimal("2.00"),
            "non_viable_primary": [1],
            "non_viable_secondary": [],
        }


# ============================================================
# Command Tests
# ============================================================


class CreateAdminCommandTest(TestCase):
    def _call(self, secret):
        out = StringIO()
        call_command(
            "create_admin",
            "--username", "root",
            "--password", "s3cret-pass",
            "--setup-secret", secret,
            stdout=out,
        )
        return out.getvalue()

    @override_settings(ADMIN_SETUP_SECRET="")
    def test_refused_when_not_configured(self):
        with self.assertRaises(CommandError):
            self._call("anything")

    @override_settings(ADMIN_SETUP_SECRET="open-sesame")
    def test_wrong_secret(self):
        with self.assertRaises(CommandError):
            self._call("guess")
        self.assertFalse(User.objects.exists())

    @override_settings(ADMIN_SETUP_SECRET="open-sesame")
    def test_creates_first_admin_only(self):
        self.assertIn("Admin root created.", self._call("open-sesame"))
        admin = User.objects.get(username="root")
        self.assertTrue(admin.is_staff)
        self.assertEqual(admin.profile.role, "admin")

        with self.assertRaises(CommandError):
            self._call("open-sesame")


class MigrateLegacyNumbersCommandTest(TestCase):
    def test_converts_and_clears(self):
        legacy = make_prediction(
            "gopher5",
            non_viable_primary=[],
            legacy_viable_primary=list(range(1, 11)),
        )
        both = make_prediction(
            "powerball",
            non_viable_primary=[1],
            non_viable_secondary=[],
            legacy_viable_primary=[5, 6],
        )
        everything = make_prediction(
            "pick3",
            non_viable_primary=[],
            legacy_viable_primary=list(range(10)),
        )
        before = viable_numbers_for(legacy)
        out = StringIO()

        call_command("migrate_legacy_numbers", stdout=out)

        legacy.refresh_from_db()
        self.assertEqual(legacy.non_viable_primary, list(range(11, 48)))
        self.assertEqual(legacy.legacy_viable_primary, [])
        self.assertEqual(viable_numbers_for(legacy), before)

        both.refresh_from_db()
        self.assertEqual(both.non_viable_primary, [1])
        self.assertEqual(both.legacy_viable_primary, [])

        everything.refresh_from_db()
        self.assertEqual(everything.legacy_viable_primary, list(range(10)))
        self.assertIn("Migrated 1 prediction(s); cleared 1; skipped 1.", out.getvalue())

    def test_dry_run_writes_nothing(self):
        legacy = make_prediction(
            "gopher5", non_viable_primary=[], legacy_viable_primary=[1, 2]
        )
        call_command("migrate_legacy_numbers", "--dry-run", stdout=StringIO())
        legacy.refresh_from_db()
        self.assertEqual(legacy.legacy_viable_primary, [1, 2])
        self.assertEqual(legacy.non_viable_primary, [])


# ============================================================
# API Tests
# ============================================================


class PublicAPITest(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_lotteries(self):
        response = self.client.get("/api/lotteries/")
        self.assertEqual(response.status_code, 200)
        codes = [item["code"] for item in response.data]
        self.assertEqual(codes, ["powerball", "megamillion", "lottoamerica", "gopher5", "pick3"])
        self.assertIsNotNone(response.data[0]["next_draw"])
        self.assertIsNone(response.data[3]["secondary"])

    def test_register(self):
        response = self.client.post(
            "/api/auth/register",
            {"username": "newbie", "password": "s3cret-pass", "selected_lottery": "pick3"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["profile"]["selected_lottery"], "pick3")
        self.assertTrue(response.data["profile"]["trial"]["active"])
        self.assertNotIn("password", response.data["profile"])

    def test_register_validation(self):
        make_user("taken")
        response = self.client.post(
            "/api/auth/register",
            {"username": "Taken", "password": "short", "selected_lottery": "bingo"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            set(response.data), {"username", "password", "selected_lottery"}
        )

    def test_public_list_hides_numbers(self):
        make_prediction("powerball")
        make_prediction("powerball", is_active=False)
        make_prediction("powerball", draw_date=timezone.localdate() - timedelta(days=1))

        response = self.client.get("/api/predictions/POWERBALL/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["predictions"]), 1)
        item = response.data["predictions"][0]
        self.assertNotIn("non_viable_primary", item)
        self.assertNotIn("viable_numbers", item)

    def test_public_list_unknown_lottery(self):
        response = self.client.get("/api/predictions/bingo/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_lottery")


class PredictionAPITest(TestCase):
    def setUp(self):
        self.user = make_user(lottery="powerball")
        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.prediction = make_prediction("powerball")

    def test_detail_with_trial(self):
        response = self.client.get(
            f"/api/predictions/powerball/{self.prediction.pk}/", HTTP_USER_AGENT="tests"
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["viable_numbers"]["primary"], list(range(4, 70)))
        self.assertEqual(len(response.data["viable_numbers"]["secondary"]), 25)
        self.assertEqual(response.data["access"]["via"], "trial")
        purchase = Purchase.objects.get(user=self.user)
        self.assertEqual(purchase.user_agent, "tests")

    def test_detail_denied(self):
        other = make_prediction("megamillion")
        response = self.client.get(f"/api/predictions/megamillion/{other.pk}/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "lottery_mismatch")
        self.assertNotIn("viable_numbers", response.data)

    def test_detail_url_lottery_mismatch(self):
        response = self.client.get(f"/api/predictions/gopher5/{self.prediction.pk}/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "lottery_mismatch")

    def test_detail_not_found(self):
        response = self.client.get("/api/predictions/powerball/9999/")
        self.assertEqual(response.status_code, 404)

    def test_detail_requires_authentication(self):
        response = APIClient().get(f"/api/predictions/powerball/{self.prediction.pk}/")
        self.assertIn(response.status_code, (401, 403))

    def test_purchase_with_wallet(self):
        WalletService.deposit(self.user, Decimal("5.00"))

        response = self.client.post(
            f"/api/predictions/powerball/{self.prediction.pk}/purchase",
            {"payment_method": "wallet"},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["purchase"]["payment_status"], "completed")
        self.assertEqual(response.data["wallet"]["balance"], Decimal("3.00"))

    def test_purchase_insufficient_balance(self):
        response = self.client.post(
            f"/api/predictions/powerball/{self.prediction.pk}/purchase",
            {},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "insufficient_balance")
        self.assertFalse(Purchase.objects.exists())

    def test_purchase_twice(self):
        WalletService.deposit(self.user, Decimal("5.00"))
        url = f"/api/predictions/powerball/{self.prediction.pk}/purchase"
        self.client.post(url, {}, format="json")

        response = self.client.post(url, {}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "already_purchased")

    def test_purchase_trial_method_rejected(self):
        response = self.client.post(
            f"/api/predictions/powerball/{self.prediction.pk}/purchase",
            {"payment_method": "trial"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("payment_method", response.data)

    def test_my_purchases(self):
        WalletService.deposit(self.user, Decimal("10.00"))
        PurchaseService.purchase(self.user, self.prediction, "powerball")
        gone = make_prediction("powerball")
        PurchaseService.purchase(self.user, gone, "powerball")
        gone.delete()

        response = self.client.get("/api/predictions/my-purchases/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["prediction"]["id"], self.prediction.pk)
        self.assertEqual(response.data[0]["viable_numbers"]["secondary"][9], 11)

    def test_trial_listing(self):
        response = self.client.get("/api/predictions/trial/powerball/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["predictions"]), 1)
        self.assertFalse(response.data["viewed_today"])

        response = self.client.get("/api/predictions/trial/gopher5/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "lottery_mismatch")

    def test_trial_listing_after_expiry(self):
        Profile.objects.filter(user=self.user).update(
            trial_end=timezone.now() - timedelta(days=1)
        )
        response = self.client.get("/api/predictions/trial/powerball/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "trial_expired")

    def test_trial_listing_without_selected_lottery(self):
        Profile.objects.filter(user=self.user).update(selected_lottery="")
        response = self.client.get("/api/predictions/trial/powerball/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "no_lottery_selected")

    def test_trial_listing_selected_lottery_is_case_insensitive(self):
        Profile.objects.filter(user=self.user).update(selected_lottery="POWERBALL")
        response = self.client.get("/api/predictions/trial/powerball/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["predictions"]), 1)

    def test_result_requires_entitlement(self):
        Result.objects.create(
            prediction=self.prediction,
            lottery_code="powerball",
            draw_date=self.prediction.draw_date,
            winning_primary=[1, 2, 3, 4, 5],
            winning_secondary=[6],
        )
        url = f"/api/predictions/result/{self.prediction.pk}/"

        response = self.client.get(url)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "must_purchase")

        AccessService.open_prediction(self.user, self.prediction)
        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["results"][0]["winning_secondary"], [6])

    def test_profile_update(self):
        response = self.client.patch(
            "/api/profile/",
            {
                "phone": "612-555-0100",
                "notification_lotteries": ["gopher5"],
                "selected_lottery": "pick3",
            },
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["phone"], "612-555-0100")
        self.assertEqual(response.data["notification_lotteries"], ["gopher5"])
        # The trial lottery is fixed at registration.
        self.assertEqual(response.data["selected_lottery"], "powerball")

    def test_profile_too_many_notification_lotteries(self):
        response = self.client.patch(
            "/api/profile/",
            {"notification_lotteries": ["gopher5", "pick3", "megamillion"]},
            format="json",
        )
        self.assertEqual(response.status_code, 400)


class AdminAPITest(TestCase):
    def setUp(self):
        self.admin = make_user("root", trial=False, is_staff=True)
        self.client = APIClient()
        self.client.force_authenticate(self.admin)

    def test_requires_admin(self):
        client = APIClient()
        client.force_authenticate(make_user())
        self.assertEqual(client.get("/api/admin/predictions/").status_code, 403)
        self.assertEqual(client.get("/api/admin/payments/stats/").status_code, 403)

    def test_create_prediction_cleans_numbers(self):
        with patch.object(notify_lottery_subscribers, "delay") as mock_delay:
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.post(
                    "/api/admin/predictions/",
                    {
                        "lottery_code": "powerball",
                        "draw_date": "2026-12-02",
                        "draw_time": "20:59",
                        "non_viable_primary": [5, 3, 3, 69],
                        "non_viable_secondary": [26, 26],
                    },
                    format="json",
                )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["non_viable_primary"], [3, 5, 69])
        self.assertEqual(response.data["non_viable_secondary"], [26])
        self.assertEqual(response.data["price"], Decimal("2.00"))
        self.assertEqual(len(response.data["viable_numbers"]["primary"]), 66)
        prediction = Prediction.objects.get()
        self.assertEqual(prediction.uploaded_by, self.admin)
        mock_delay.assert_called_once()

    def test_create_prediction_rejects_out_of_range(self):
        response = self.client.post(
            "/api/admin/predictions/",
            {
                "lottery_code": "gopher5",
                "draw_date": "2026-12-02",
                "draw_time": "18:00",
                "non_viable_primary": [0, 48, 5],
                "non_viable_secondary": [1],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("non_viable_primary", response.data)
        self.assertIn("non_viable_secondary", response.data)
        self.assertFalse(Prediction.objects.exists())

    def test_create_prediction_rejects_bad_time(self):
        response = self.client.post(
            "/api/admin/predictions/",
            {"lottery_code": "pick3", "draw_date": "2026-12-02", "draw_time": "25:00"},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("draw_time", response.data)

    def test_update_and_delete_prediction(self):
        prediction = make_prediction("pick3", non_viable_primary=[1])
        url = f"/api/admin/predictions/{prediction.pk}/"

        response = self.client.patch(
            url, {"non_viable_primary": [9, 0, 9], "accuracy": 80}, format="json"
        )
        self.assertEqual(response.status_code, 200)
        prediction.refresh_from_db()
        self.assertEqual(prediction.non_viable_primary, [0, 9])
        self.assertEqual(prediction.accuracy, 80)

        # 0 is a valid digit but outside Gopher 5's range.
        response = self.client.patch(url, {"lottery_code": "gopher5"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("non_viable_primary", response.data)

        self.assertEqual(self.client.delete(url).status_code, 204)
        self.assertFalse(Prediction.objects.exists())

    def test_record_result(self):
        prediction = make_prediction("powerball")
        url = f"/api/admin/predictions/{prediction.pk}/results/"

        with patch.object(notify_lottery_subscribers, "delay"):
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.post(
                    url,
                    {
                        "winning_primary": [1, 2, 3, 4, 5],
                        "winning_secondary": [6],
                        "jackpot": "1000000.00",
                        "winners": {"jackpot": 0, "match_5": 2},
                    },
                    format="json",
                )

        self.assertEqual(response.status_code, 201)
        result = Result.objects.get()
        self.assertEqual(result.lottery_code, "powerball")
        self.assertEqual(result.draw_date, prediction.draw_date)
        self.assertEqual(result.added_by, self.admin)

        response = self.client.post(
            url, {"winning_primary": [1, 2, 70], "winning_secondary": [6]}, format="json"
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("winning_primary", response.data)

    def test_payments_list_and_filters(self):
        user = make_user(trial=False)
        WalletService.deposit(user, Decimal("10.00"))
        PurchaseService.purchase(user, make_prediction("powerball"), "powerball")
        PurchaseService.purchase(
            user, make_prediction("gopher5"), "gopher5", payment_method="paypal"
        )

        self.assertEqual(len(self.client.get("/api/admin/payments/").data), 2)
        response = self.client.get("/api/admin/payments/?status=PENDING")
        self.assertEqual([p["payment_method"] for p in response.data], ["paypal"])
        response = self.client.get("/api/admin/payments/?lottery=powerball")
        self.assertEqual([p["username"] for p in response.data], ["alice"])

    def test_payment_stats(self):
        user = make_user(trial=False)
        WalletService.deposit(user, Decimal("10.00"))
        PurchaseService.purchase(user, make_prediction("megamillion"), "megamillion")

        response = self.client.get("/api/admin/payments/stats/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_revenue"], Decimal("5.00"))
        self.assertEqual(response.data["by_lottery"]["megamillion"]["count"], 1)

    def test_bulk_delete(self):
        user = make_user(trial=False)
        WalletService.deposit(user, Decimal("10.00"))
        purchase, _ = PurchaseService.purchase(user, make_prediction(), "powerball")

        response = self.client.post(
            "/api/admin/payments/bulk-delete",
            {"transaction_ids": [purchase.transaction_id]},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["deleted"], 1)
        self.assertEqual(
            self.client.post(
                "/api/admin/payments/bulk-delete", {"transaction_ids": []}, format="json"
            ).status_code,
            400,
        )

    def test_refund(self):
        user = make_user(trial=False)
        WalletService.deposit(user, Decimal("10.00"))
        purchase, _ = PurchaseService.purchase(user, make_prediction(), "powerball")
        url = f"/api/admin/purchases/{purchase.pk}/refund"

        response = self.client.post(url, {"reason": "Duplicate"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["purchase"]["payment_status"], "refunded")
        self.assertEqual(WalletService.get_wallet(user).balance, Decimal("10.00"))

        response = self.client.post(url, {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "invalid_transition")

        self.assertEqual(
            self.client.post("/api/admin/purchases/9999/refund", {}, format="json").status_code,
            404,
        )
