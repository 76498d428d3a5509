import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Count, DecimalField, F, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from predictions.catalog import get_lottery
from predictions.exceptions import AlreadyPurchased
from predictions.models import Prediction, Purchase
from predictions.services.access import AccessService, generate_transaction_id
from wallets.services import WalletService

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class PurchaseService:
    """
    Creates, refunds and reports on prediction purchases.

    A wallet purchase debits the ledger and records the completed purchase
    in one atomic block: if the debit fails nothing is written.
    """

    @staticmethod
    def purchase(
        user,
        prediction,
        lottery_code,
        payment_method=Purchase.PaymentMethod.WALLET,
        ip_address=None,
        user_agent="",
    ):
        """
        Buy a prediction.

        Gateway methods are stubbed and leave the purchase pending until the
        payment is confirmed out of band.

        Returns:
            Tuple of (purchase, wallet). Wallet is None for gateway purchases.

        Raises:
            UnknownLottery, LotteryMismatch: On a bad lottery code.
            AlreadyPurchased: If the user already holds a completed or trial
                purchase of this prediction.
            InsufficientBalance: If the wallet cannot cover the price.
            ValueError: If the prediction is inactive or the method unknown.
        """
        AccessService.check_lottery(prediction, lottery_code)
        if not prediction.is_active:
            raise ValueError("This prediction is no longer available.")
        if payment_method not in (
            Purchase.PaymentMethod.WALLET,
            Purchase.PaymentMethod.STRIPE,
            Purchase.PaymentMethod.PAYPAL,
        ):
            raise ValueError(f"Unsupported payment method: {payment_method}.")

        try:
            with transaction.atomic():
                return PurchaseService._create(
                    user, prediction, payment_method, ip_address, user_agent
                )
        except IntegrityError:
            # A concurrent request completed the same purchase first.
            raise AlreadyPurchased("You have already purchased this prediction.") from None

    @staticmethod
    def _create(user, prediction, payment_method, ip_address, user_agent):
        if Purchase.objects.filter(
            user=user,
            prediction=prediction,
            payment_status__in=Purchase.ENTITLING_STATUSES,
        ).exists():
            raise AlreadyPurchased("You have already purchased this prediction.")

        lottery = get_lottery(prediction.lottery_code)
        transaction_id = generate_transaction_id("PRED")
        wallet = None

        if payment_method == Purchase.PaymentMethod.WALLET:
            if prediction.price > 0:
                wallet = WalletService.debit(
                    user,
                    prediction.price,
                    description=f"{lottery.name} prediction for {prediction.draw_date}",
                    reference=transaction_id,
                    metadata={"prediction_id": prediction.pk},
                )
            else:
                wallet = WalletService.get_wallet(user)
            purchase = Purchase.objects.create(
                user=user,
                prediction=prediction,
                amount=prediction.price,
                payment_method=payment_method,
                payment_status=Purchase.PaymentStatus.COMPLETED,
                transaction_id=transaction_id,
                ip_address=ip_address,
                user_agent=user_agent or "",
            )
            Prediction.objects.filter(pk=prediction.pk).update(
                purchase_count=F("purchase_count") + 1
            )
        else:
            purchase = Purchase.objects.create(
                user=user,
                prediction=prediction,
                amount=prediction.price,
                payment_method=payment_method,
                payment_status=Purchase.PaymentStatus.PENDING,
                transaction_id=transaction_id,
                ip_address=ip_address,
                user_agent=user_agent or "",
                gateway_response={"gateway": payment_method, "status": "awaiting_payment"},
            )

        logger.info(
            "Prediction purchase: user=%s prediction=%s method=%s status=%s "
            "amount=%s tx=%s",
            user.pk,
            prediction.pk,
            payment_method,
            purchase.payment_status,
            purchase.amount,
            transaction_id,
        )
        return purchase, wallet

    @staticmethod
    @transaction.atomic
    def refund(purchase_id, reason=""):
        """
        Refund a completed purchase.

        Wallet purchases get an offsetting `refund` ledger entry.

        Raises:
            Purchase.DoesNotExist: If the purchase does not exist.
            InvalidTransition: If the purchase is not completed.
        """
        purchase = Purchase.objects.select_for_update().get(pk=purchase_id)
        purchase.transition_to(Purchase.PaymentStatus.REFUNDED)
        purchase.refund_reason = (reason or "")[:200]
        purchase.refunded_at = timezone.now()
        purchase.save(
            update_fields=["payment_status", "refund_reason", "refunded_at", "updated_at"]
        )
        if purchase.prediction_id:
            Prediction.objects.filter(
                pk=purchase.prediction_id, purchase_count__gt=0
            ).update(purchase_count=F("purchase_count") - 1)

        if purchase.payment_method == Purchase.PaymentMethod.WALLET and purchase.amount > 0:
            WalletService.refund(
                purchase.user,
                purchase.amount,
                description=f"Refund for purchase {purchase.transaction_id}",
                reference=purchase.transaction_id,
                metadata={"reason": purchase.refund_reason},
            )

        logger.info(
            "Purchase refunded: tx=%s user=%s amount=%s reason=%s",
            purchase.transaction_id,
            purchase.user_id,
            purchase.amount,
            purchase.refund_reason,
        )
        return purchase

    @staticmethod
    def delete_by_transaction_ids(transaction_ids):
        """Administrative remediation: hard-delete purchases by transaction id."""
        deleted, _ = Purchase.objects.filter(transaction_id__in=transaction_ids).delete()
        logger.warning("Purchases deleted by admin: count=%d ids=%s", deleted, transaction_ids)
        return deleted

    @staticmethod
    def visible_purchases(user):
        """A user's entitling purchases whose prediction still exists."""
        return (
            Purchase.objects.filter(
                user=user,
                payment_status__in=Purchase.ENTITLING_STATUSES,
                prediction__isnull=False,
            )
            .select_related("prediction")
            .order_by("-created_at", "-id")
        )

    @staticmethod
    def stats():
        """Payment statistics. Trial views never count as revenue."""

        def total(condition):
            return Coalesce(
                Sum("amount", filter=condition),
                Value(ZERO),
                output_field=DecimalField(max_digits=12, decimal_places=2),
            )

        completed = Q(payment_status=Purchase.PaymentStatus.COMPLETED)
        totals = Purchase.objects.aggregate(
            total_revenue=total(completed),
            total_refunded=total(Q(payment_status=Purchase.PaymentStatus.REFUNDED)),
            total_purchases=Count("id", filter=~Q(payment_status=Purchase.PaymentStatus.TRIAL)),
            completed=Count("id", filter=completed),
            pending=Count("id", filter=Q(payment_status=Purchase.PaymentStatus.PENDING)),
            failed=Count("id", filter=Q(payment_status=Purchase.PaymentStatus.FAILED)),
            refunded=Count("id", filter=Q(payment_status=Purchase.PaymentStatus.REFUNDED)),
            trial_views=Count("id", filter=Q(payment_status=Purchase.PaymentStatus.TRIAL)),
        )

        by_method = (
            Purchase.objects.filter(completed)
            .values("payment_method")
            .annotate(count=Count("id"), revenue=Sum("amount"))
            .order_by("payment_method")
        )
        by_lottery = (
            Purchase.objects.filter(completed, prediction__isnull=False)
            .values("prediction__lottery_code")
            .annotate(count=Count("id"), revenue=Sum("amount"))
            .order_by("prediction__lottery_code")
        )

        totals["by_method"] = {
            row["payment_method"]: {"count": row["count"], "revenue": row["revenue"]}
            for row in by_method
        }
        totals["by_lottery"] = {
            row["prediction__lottery_code"]: {"count": row["count"], "revenue": row["revenue"]}
            for row in by_lottery
        }
        return totals
