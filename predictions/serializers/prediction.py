import re

from rest_framework import serializers

from predictions.catalog import LOTTERY_CHOICES, get_lottery
from predictions.derivation import viable_numbers_for
from predictions.models import Prediction, Result
from predictions.services import PredictionService

DRAW_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def clean_numbers(number_range, numbers):
    """
    Check a number list against a range.

    Returns the de-duplicated numbers in ascending order; raises a
    ValidationError naming every out-of-range value.
    """
    outside = sorted({n for n in numbers if n not in number_range})
    if outside:
        raise serializers.ValidationError(
            f"Numbers must be between {number_range.low} and {number_range.high}; "
            f"got {outside}."
        )
    return sorted(set(numbers))


class PredictionSummarySerializer(serializers.ModelSerializer):
    """Public metadata; never discloses any numbers."""

    lottery_name = serializers.CharField(read_only=True)

    class Meta:
        model = Prediction
        fields = (
            "id",
            "lottery_code",
            "lottery_name",
            "draw_date",
            "draw_time",
            "price",
            "notes",
            "is_active",
            "download_count",
            "purchase_count",
            "accuracy",
            "created_at",
        )
        read_only_fields = fields


class AdminPredictionSerializer(serializers.ModelSerializer):
    """
    Admin create/update of a prediction.

    Non-viable numbers are range-checked and de-duplicated here; viable
    numbers are derived on read and exposed for review only.
    """

    lottery_code = serializers.ChoiceField(choices=LOTTERY_CHOICES)
    non_viable_primary = serializers.ListField(
        child=serializers.IntegerField(), required=False
    )
    non_viable_secondary = serializers.ListField(
        child=serializers.IntegerField(), required=False
    )
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    viable_numbers = serializers.SerializerMethodField()
    uploaded_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Prediction
        fields = (
            "id",
            "lottery_code",
            "draw_date",
            "draw_time",
            "non_viable_primary",
            "non_viable_secondary",
            "legacy_viable_primary",
            "legacy_viable_secondary",
            "viable_numbers",
            "price",
            "is_active",
            "notes",
            "accuracy",
            "uploaded_by",
            "download_count",
            "purchase_count",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "legacy_viable_primary",
            "legacy_viable_secondary",
            "download_count",
            "purchase_count",
        )

    def get_viable_numbers(self, prediction):
        return viable_numbers_for(prediction).as_dict()

    def validate_draw_time(self, value):
        if not DRAW_TIME_RE.match(value):
            raise serializers.ValidationError("Draw time must be HH:MM (24-hour).")
        return value

    def validate(self, attrs):
        code = attrs.get("lottery_code") or getattr(self.instance, "lottery_code", None)
        lottery = get_lottery(code)
        errors = {}
        # Stored numbers are re-checked when the lottery changes.
        recheck = self.instance is None or "lottery_code" in attrs

        primary = attrs.get("non_viable_primary")
        if primary is None and recheck:
            primary = getattr(self.instance, "non_viable_primary", None) or []
        if primary is not None:
            try:
                attrs["non_viable_primary"] = clean_numbers(lottery.primary, primary)
            except serializers.ValidationError as exc:
                errors["non_viable_primary"] = exc.detail

        secondary = attrs.get("non_viable_secondary")
        if secondary is None and recheck:
            secondary = getattr(self.instance, "non_viable_secondary", None) or []
        if secondary is not None:
            if not lottery.is_double:
                if secondary:
                    errors["non_viable_secondary"] = [
                        f"{lottery.name} has no secondary number range."
                    ]
                attrs["non_viable_secondary"] = []
            else:
                try:
                    attrs["non_viable_secondary"] = clean_numbers(
                        lottery.secondary, secondary
                    )
                except serializers.ValidationError as exc:
                    errors["non_viable_secondary"] = exc.detail

        if errors:
            raise serializers.ValidationError(errors)

        if self.instance is None and "price" not in attrs:
            attrs["price"] = lottery.price
        return attrs

    def create(self, validated_data):
        return PredictionService.create(self.context["request"].user, **validated_data)

    def update(self, instance, validated_data):
        return PredictionService.update(instance, **validated_data)


class ResultSerializer(serializers.ModelSerializer):
    winning_primary = serializers.ListField(child=serializers.IntegerField())
    winning_secondary = serializers.ListField(
        child=serializers.IntegerField(), required=False
    )
    winners = serializers.DictField(child=serializers.IntegerField(min_value=0), required=False)
    jackpot = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    added_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Result
        fields = (
            "id",
            "prediction",
            "lottery_code",
            "draw_date",
            "winning_primary",
            "winning_secondary",
            "jackpot",
            "winners",
            "added_by",
            "created_at",
        )
        read_only_fields = ("prediction", "lottery_code", "draw_date")

    def validate(self, attrs):
        lottery = get_lottery(self.context["prediction"].lottery_code)
        errors = {}

        ranges = [("winning_primary", lottery.primary)]
        if lottery.is_double:
            ranges.append(("winning_secondary", lottery.secondary))
        elif attrs.get("winning_secondary"):
            errors["winning_secondary"] = [f"{lottery.name} has no secondary number range."]

        for field, number_range in ranges:
            numbers = attrs.get(field, [])
            if len(numbers) != number_range.pick:
                errors[field] = [f"Exactly {number_range.pick} number(s) required."]
            elif any(n not in number_range for n in numbers):
                errors[field] = [
                    f"Numbers must be between {number_range.low} and {number_range.high}."
                ]

        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def create(self, validated_data):
        return PredictionService.record_result(
            self.context["prediction"], self.context["request"].user, **validated_data
        )
