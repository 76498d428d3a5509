from django.contrib import admin

from predictions.models import Prediction, Profile, Purchase, Result
from wallets.admin import ReadOnlyAdminMixin


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "selected_lottery",
        "trial_start",
        "trial_end",
        "last_trial_prediction_at",
        "prediction_notifications_enabled",
    )
    list_filter = ("selected_lottery", "prediction_notifications_enabled")
    search_fields = ("user__username", "user__email", "phone")
    readonly_fields = ("user", "last_trial_prediction_at", "created_at", "updated_at")


class ResultInline(admin.TabularInline):
    model = Result
    fields = ("draw_date", "winning_primary", "winning_secondary", "jackpot")
    extra = 0


@admin.register(Prediction)
class PredictionAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "lottery_code",
        "draw_date",
        "draw_time",
        "price",
        "is_active",
        "download_count",
        "purchase_count",
        "accuracy",
    )
    list_filter = ("lottery_code", "is_active")
    date_hierarchy = "draw_date"
    readonly_fields = (
        "legacy_viable_primary",
        "legacy_viable_secondary",
        "download_count",
        "purchase_count",
        "created_at",
        "updated_at",
    )
    inlines = [ResultInline]


@admin.register(Purchase)
class PurchaseAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "transaction_id",
        "user",
        "prediction",
        "amount",
        "payment_method",
        "payment_status",
        "created_at",
    )
    list_filter = ("payment_method", "payment_status")
    search_fields = ("transaction_id", "user__username", "user__email")
