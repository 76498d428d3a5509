from django.db import models


class BaseModel(models.Model):
    """
    Abstract base carrying creation and last-modification timestamps.

    Shared by the ledger and prediction models; ledger rows never change
    after insert, so for them `updated_at` always equals `created_at`.
    """

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-created_at"]
