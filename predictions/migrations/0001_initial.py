import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

LOTTERY_CHOICES = [
    ("powerball", "Powerball (USA)"),
    ("megamillion", "Mega Millions (USA)"),
    ("lottoamerica", "Lotto America (USA)"),
    ("gopher5", "Gopher 5 (Minnesota)"),
    ("pick3", "Pick 3 (Minnesota)"),
]


def id_field():
    return models.BigAutoField(
        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Prediction",
            fields=[
                ("id", id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "lottery_code",
                    models.CharField(choices=LOTTERY_CHOICES, max_length=20),
                ),
                ("draw_date", models.DateField()),
                (
                    "draw_time",
                    models.CharField(help_text="HH:MM, 24-hour clock.", max_length=5),
                ),
                ("non_viable_primary", models.JSONField(blank=True, default=list)),
                ("non_viable_secondary", models.JSONField(blank=True, default=list)),
                ("legacy_viable_primary", models.JSONField(blank=True, default=list)),
                ("legacy_viable_secondary", models.JSONField(blank=True, default=list)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("is_active", models.BooleanField(default=True)),
                ("download_count", models.PositiveIntegerField(default=0)),
                ("purchase_count", models.PositiveIntegerField(default=0)),
                (
                    "accuracy",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[django.core.validators.MaxValueValidator(100)],
                    ),
                ),
                ("notes", models.CharField(blank=True, default="", max_length=500)),
                (
                    "uploaded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="uploaded_predictions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["draw_date", "draw_time", "id"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["lottery_code", "draw_date"],
                        name="idx_pred_lottery_date",
                    ),
                    models.Index(
                        fields=["is_active", "draw_date"], name="idx_pred_active_date"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Profile",
            fields=[
                ("id", id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("phone", models.CharField(blank=True, default="", max_length=20)),
                (
                    "selected_lottery",
                    models.CharField(
                        blank=True,
                        choices=LOTTERY_CHOICES,
                        default="",
                        help_text="The one lottery whose predictions are free during the trial.",
                        max_length=20,
                    ),
                ),
                ("trial_start", models.DateTimeField(blank=True, null=True)),
                ("trial_end", models.DateTimeField(blank=True, null=True)),
                ("last_trial_prediction_at", models.DateTimeField(blank=True, null=True)),
                ("prediction_notifications_enabled", models.BooleanField(default=True)),
                (
                    "notification_lotteries",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Up to two additional lotteries to receive SMS updates for.",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Purchase",
            fields=[
                ("id", id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("wallet", "Wallet"),
                            ("stripe", "Stripe"),
                            ("paypal", "PayPal"),
                            ("trial", "Free trial"),
                        ],
                        max_length=10,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                            ("trial", "Trial"),
                        ],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("is_trial_view", models.BooleanField(default=False)),
                (
                    "trial_day",
                    models.DateField(
                        blank=True,
                        help_text="Local calendar day of a trial grant; one grant per user per day.",
                        null=True,
                    ),
                ),
                ("transaction_id", models.CharField(max_length=100, unique=True)),
                ("download_count", models.PositiveIntegerField(default=0)),
                ("last_downloaded", models.DateTimeField(blank=True, null=True)),
                ("refund_reason", models.CharField(blank=True, default="", max_length=200)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, default="", max_length=255)),
                ("gateway_response", models.JSONField(blank=True, default=dict)),
                (
                    "prediction",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchases",
                        to="predictions.prediction",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="purchases",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["user", "prediction", "payment_status"],
                        name="idx_purchase_user_pred_status",
                    ),
                    models.Index(
                        fields=["payment_status"], name="idx_purchase_status"
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("payment_status", "completed")),
                        fields=("user", "prediction"),
                        name="uniq_completed_purchase",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("payment_status", "trial")),
                        fields=("user", "prediction"),
                        name="uniq_trial_purchase",
                    ),
                    models.UniqueConstraint(
                        fields=("user", "trial_day"),
                        name="uniq_trial_grant_per_day",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Result",
            fields=[
                ("id", id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "lottery_code",
                    models.CharField(choices=LOTTERY_CHOICES, max_length=20),
                ),
                ("draw_date", models.DateField()),
                ("winning_primary", models.JSONField(default=list)),
                ("winning_secondary", models.JSONField(blank=True, default=list)),
                (
                    "jackpot",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True
                    ),
                ),
                ("winners", models.JSONField(blank=True, default=dict)),
                (
                    "added_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="recorded_results",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "prediction",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="results",
                        to="predictions.prediction",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
            },
        ),
    ]
