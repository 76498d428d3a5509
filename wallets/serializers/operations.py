from decimal import Decimal

from django.conf import settings
from rest_framework import serializers


class LedgerOperationSerializer(serializers.Serializer):
    """Validates deposit and withdrawal requests."""

    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01")
    )
    description = serializers.CharField(max_length=255, required=False)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True)


class PaymentSerializer(LedgerOperationSerializer):
    """Payments and bonuses must say what they are for."""

    description = serializers.CharField(min_length=1, max_length=255)
    metadata = serializers.DictField(required=False)


class TopUpSerializer(serializers.Serializer):
    """Validates a gateway-funded wallet top-up against the configured bounds."""

    PAYMENT_METHODS = ("stripe", "paypal")

    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHODS)

    def validate_amount(self, value):
        low = settings.WALLET_TOP_UP_MIN
        high = settings.WALLET_TOP_UP_MAX
        if not low <= value <= high:
            raise serializers.ValidationError(
                f"Amount must be between ${low} and ${high}."
            )
        return value
