from rest_framework import serializers

from predictions.derivation import viable_numbers_for
from predictions.models import Purchase
from predictions.serializers.prediction import PredictionSummarySerializer


class PurchaseRequestSerializer(serializers.Serializer):
    PAYMENT_METHODS = (
        Purchase.PaymentMethod.WALLET,
        Purchase.PaymentMethod.STRIPE,
        Purchase.PaymentMethod.PAYPAL,
    )

    payment_method = serializers.ChoiceField(
        choices=PAYMENT_METHODS, default=Purchase.PaymentMethod.WALLET
    )


class PurchaseSerializer(serializers.ModelSerializer):
    lottery_code = serializers.CharField(
        source="prediction.lottery_code", read_only=True, default=None
    )

    class Meta:
        model = Purchase
        fields = (
            "id",
            "transaction_id",
            "prediction",
            "lottery_code",
            "amount",
            "payment_method",
            "payment_status",
            "is_trial_view",
            "download_count",
            "last_downloaded",
            "refund_reason",
            "refunded_at",
            "created_at",
        )
        read_only_fields = fields


class MyPurchaseSerializer(PurchaseSerializer):
    """A purchase with its prediction and the numbers it unlocked."""

    prediction = PredictionSummarySerializer(read_only=True)
    viable_numbers = serializers.SerializerMethodField()

    class Meta(PurchaseSerializer.Meta):
        fields = PurchaseSerializer.Meta.fields + ("viable_numbers",)
        read_only_fields = fields

    def get_viable_numbers(self, purchase):
        return viable_numbers_for(purchase.prediction).as_dict()


class AdminPurchaseSerializer(PurchaseSerializer):
    user_id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta(PurchaseSerializer.Meta):
        fields = PurchaseSerializer.Meta.fields + (
            "user_id",
            "username",
            "ip_address",
            "user_agent",
            "gateway_response",
        )
        read_only_fields = fields


class RefundSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True)


class BulkDeleteSerializer(serializers.Serializer):
    transaction_ids = serializers.ListField(
        child=serializers.CharField(max_length=100), min_length=1
    )
