from django.contrib import admin

from wallets.models import Transaction, Wallet


class ReadOnlyAdminMixin:
    """
    Makes an admin model browsable but not editable.

    Balances only move through WalletService and ledger entries are
    append-only, so the admin site never writes to either.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class TransactionInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = Transaction
    fields = ("created_at", "transaction_type", "amount", "status", "reference")
    readonly_fields = fields
    extra = 0
    show_change_link = True


@admin.register(Wallet)
class WalletAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "user",
        "balance",
        "total_deposited",
        "total_withdrawn",
        "last_transaction_at",
    )
    search_fields = ("uuid", "user__email", "user__username")
    readonly_fields = (
        "uuid",
        "user",
        "balance",
        "currency",
        "total_deposited",
        "total_withdrawn",
        "last_transaction_at",
        "created_at",
        "updated_at",
    )
    inlines = [TransactionInline]


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "wallet",
        "transaction_type",
        "amount",
        "status",
        "reference",
        "created_at",
    )
    list_filter = ("transaction_type", "status")
    search_fields = ("wallet__uuid", "wallet__user__email", "reference")
    readonly_fields = (
        "wallet",
        "transaction_type",
        "amount",
        "status",
        "description",
        "reference",
        "metadata",
        "created_at",
        "updated_at",
    )
