from django.contrib.auth import get_user_model
from rest_framework import serializers

from predictions.catalog import LOTTERY_CHOICES
from predictions.models import Profile
from predictions.services import AccessService
from predictions.services.account import MAX_NOTIFICATION_LOTTERIES


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(min_length=8, max_length=128, write_only=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    selected_lottery = serializers.ChoiceField(choices=LOTTERY_CHOICES)

    def validate_username(self, value):
        if get_user_model().objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("A user with that username already exists.")
        return value


class ProfileSerializer(serializers.ModelSerializer):
    """
    The caller's profile.

    Only the phone number and notification preferences are writable; the
    trial window and selected lottery are fixed at registration.
    """

    username = serializers.CharField(source="user.username", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    role = serializers.CharField(read_only=True)
    wallet_balance = serializers.DecimalField(
        max_digits=12, decimal_places=2, read_only=True
    )
    trial = serializers.SerializerMethodField()
    notification_lotteries = serializers.ListField(
        child=serializers.ChoiceField(choices=LOTTERY_CHOICES),
        max_length=MAX_NOTIFICATION_LOTTERIES,
        required=False,
    )

    class Meta:
        model = Profile
        fields = (
            "username",
            "email",
            "role",
            "phone",
            "selected_lottery",
            "trial_start",
            "trial_end",
            "last_trial_prediction_at",
            "trial",
            "wallet_balance",
            "prediction_notifications_enabled",
            "notification_lotteries",
        )
        read_only_fields = (
            "selected_lottery",
            "trial_start",
            "trial_end",
            "last_trial_prediction_at",
        )

    def get_trial(self, profile):
        status = AccessService.trial_status(profile)
        return {"active": status.active, "days_remaining": status.days_remaining}
