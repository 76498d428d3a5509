from rest_framework import serializers

from wallets.models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    """Read-only serializer for ledger entries."""

    wallet_uuid = serializers.UUIDField(source="wallet.uuid", read_only=True)

    class Meta:
        model = Transaction
        fields = (
            "id",
            "wallet_uuid",
            "transaction_type",
            "amount",
            "status",
            "description",
            "reference",
            "metadata",
            "created_at",
        )
        read_only_fields = fields
