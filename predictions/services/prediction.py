import logging

from django.db import transaction

from predictions.models import Prediction, Result
from predictions.services.notifications import NotificationService

logger = logging.getLogger(__name__)


class PredictionService:
    """
    Admin data entry for predictions and draw results.

    Input arrives already validated and normalised by the admin serializers;
    subscribers are notified once the write commits.
    """

    @staticmethod
    @transaction.atomic
    def create(uploaded_by, **data) -> Prediction:
        prediction = Prediction.objects.create(uploaded_by=uploaded_by, **data)
        logger.info(
            "Prediction created: id=%s lottery=%s draw=%s %s by=%s",
            prediction.pk,
            prediction.lottery_code,
            prediction.draw_date,
            prediction.draw_time,
            getattr(uploaded_by, "pk", None),
        )
        if prediction.is_active:
            NotificationService.prediction_published(prediction)
        return prediction

    @staticmethod
    @transaction.atomic
    def update(prediction, **data) -> Prediction:
        for field, value in data.items():
            setattr(prediction, field, value)
        prediction.save()
        logger.info("Prediction updated: id=%s fields=%s", prediction.pk, sorted(data))
        return prediction

    @staticmethod
    def delete(prediction):
        prediction_id = prediction.pk
        prediction.delete()
        logger.warning("Prediction deleted: id=%s", prediction_id)

    @staticmethod
    @transaction.atomic
    def record_result(prediction, added_by, **data) -> Result:
        result = Result.objects.create(
            prediction=prediction,
            lottery_code=prediction.lottery_code,
            draw_date=prediction.draw_date,
            added_by=added_by,
            **data,
        )
        logger.info(
            "Result recorded: prediction=%s lottery=%s draw=%s",
            prediction.pk,
            result.lottery_code,
            result.draw_date,
        )
        NotificationService.result_recorded(result)
        return result
