from django.conf import settings
from django.core.validators import MaxValueValidator
from django.db import models

from predictions.catalog import LOTTERY_CHOICES, get_lottery
from wallets.models import BaseModel


class Prediction(BaseModel):
    """
    The non-viable numbers an admin recorded for one drawing.

    Viable numbers are derived on every read (see predictions.derivation).
    The `legacy_viable_*` fields hold data written before non-viable numbers
    became canonical; `migrate_legacy_numbers` converts them.
    """

    lottery_code = models.CharField(max_length=20, choices=LOTTERY_CHOICES)
    draw_date = models.DateField()
    draw_time = models.CharField(max_length=5, help_text="HH:MM, 24-hour clock.")
    non_viable_primary = models.JSONField(default=list, blank=True)
    non_viable_secondary = models.JSONField(default=list, blank=True)
    legacy_viable_primary = models.JSONField(default=list, blank=True)
    legacy_viable_secondary = models.JSONField(default=list, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(default=True)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="uploaded_predictions",
    )
    download_count = models.PositiveIntegerField(default=0)
    purchase_count = models.PositiveIntegerField(default=0)
    accuracy = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MaxValueValidator(100)],
    )
    notes = models.CharField(max_length=500, blank=True, default="")

    class Meta(BaseModel.Meta):
        ordering = ["draw_date", "draw_time", "id"]
        indexes = [
            models.Index(
                fields=["lottery_code", "draw_date"], name="idx_pred_lottery_date"
            ),
            models.Index(fields=["is_active", "draw_date"], name="idx_pred_active_date"),
        ]

    def __str__(self):
        return f"Prediction {self.id} | {self.lottery_code} | {self.draw_date} {self.draw_time}"

    @property
    def lottery(self):
        return get_lottery(self.lottery_code)

    @property
    def lottery_name(self):
        return self.lottery.name

    @classmethod
    def upcoming(cls, lottery_code, today):
        """Active predictions drawing today or later, soonest first."""
        return cls.objects.filter(
            lottery_code=lottery_code,
            is_active=True,
            draw_date__gte=today,
        )
