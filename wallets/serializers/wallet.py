from rest_framework import serializers

from wallets.models import Wallet
from wallets.serializers.transaction import TransactionSerializer


class WalletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Wallet
        fields = (
            "uuid",
            "balance",
            "currency",
            "is_active",
            "total_deposited",
            "total_withdrawn",
            "last_transaction_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class WalletStatsSerializer(serializers.Serializer):
    """Read-only summary of a wallet and its recent ledger activity."""

    current_balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_deposited = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_withdrawn = serializers.DecimalField(max_digits=12, decimal_places=2)
    transaction_count = serializers.IntegerField()
    last_transaction_at = serializers.DateTimeField(allow_null=True)
    recent_transactions = TransactionSerializer(many=True)
    this_month = serializers.IntegerField()
    last_month = serializers.IntegerField()
