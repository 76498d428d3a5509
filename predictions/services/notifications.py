import logging

from django.db import transaction

from predictions.catalog import get_lottery

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Fire-and-forget SMS fan-out for published predictions and results.

    Messages are queued only once the publishing transaction commits, and a
    failure to queue is logged without affecting the caller.
    """

    @staticmethod
    def _dispatch(lottery_code: str, message: str):
        from predictions.tasks import notify_lottery_subscribers

        try:
            notify_lottery_subscribers.delay(lottery_code, message)
        except Exception:
            logger.exception(
                "Failed to queue lottery notification: lottery=%s", lottery_code
            )

    @staticmethod
    def notify(lottery_code: str, message: str):
        transaction.on_commit(
            lambda: NotificationService._dispatch(lottery_code, message)
        )

    @staticmethod
    def prediction_published(prediction):
        lottery = get_lottery(prediction.lottery_code)
        NotificationService.notify(
            lottery.code,
            f"New {lottery.name} prediction available for the "
            f"{prediction.draw_date:%b %d} draw at {prediction.draw_time}.",
        )

    @staticmethod
    def result_recorded(result):
        lottery = get_lottery(result.lottery_code)
        numbers = " ".join(str(n) for n in result.winning_primary)
        if result.winning_secondary:
            numbers += " + " + " ".join(str(n) for n in result.winning_secondary)
        NotificationService.notify(
            lottery.code,
            f"{lottery.name} results for {result.draw_date:%b %d}: {numbers}.",
        )
