from django.conf import settings
from django.db import models

from predictions.catalog import LOTTERY_CHOICES
from wallets.models import BaseModel


class Result(BaseModel):
    """Official outcome of the drawing a prediction was made for."""

    prediction = models.ForeignKey(
        "predictions.Prediction",
        on_delete=models.CASCADE,
        related_name="results",
    )
    lottery_code = models.CharField(max_length=20, choices=LOTTERY_CHOICES)
    draw_date = models.DateField()
    winning_primary = models.JSONField(default=list)
    winning_secondary = models.JSONField(default=list, blank=True)
    jackpot = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    # Winner counts keyed by prize tier, e.g. {"jackpot": 0, "match_5": 2}.
    winners = models.JSONField(default=dict, blank=True)
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_results",
    )

    def __str__(self):
        return f"Result {self.lottery_code} {self.draw_date}"
