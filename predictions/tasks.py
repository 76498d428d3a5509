import logging

from celery import shared_task

from predictions.models import Profile
from predictions.utils import send_sms

logger = logging.getLogger(__name__)


def subscribers_of(lottery_code):
    """
    Profiles that want SMS updates for `lottery_code`.

    A user is subscribed through their trial lottery or one of their extra
    notification lotteries. Admins are never messaged.
    """
    profiles = (
        Profile.objects.filter(
            prediction_notifications_enabled=True,
            user__is_active=True,
            user__is_staff=False,
        )
        .exclude(phone="")
        .select_related("user")
    )
    # JSON containment lookups are not portable across backends.
    return [
        profile
        for profile in profiles
        if profile.selected_lottery == lottery_code
        or lottery_code in (profile.notification_lotteries or [])
    ]


@shared_task(acks_late=True)
def notify_lottery_subscribers(lottery_code: str, message: str):
    """
    Send `message` by SMS to every subscriber of `lottery_code`.

    Delivery is best effort: a failed message is logged and the fan-out
    carries on with the next recipient.
    """
    sent = 0
    failed = 0

    for profile in subscribers_of(lottery_code):
        result = send_sms(profile.phone, message)
        if result["success"]:
            sent += 1
        else:
            failed += 1
            logger.error(
                "Notification not delivered: user=%s lottery=%s response=%s",
                profile.user_id,
                lottery_code,
                result["response"],
            )

    logger.info(
        "Lottery notification fan-out: lottery=%s sent=%d failed=%d",
        lottery_code,
        sent,
        failed,
    )
    return {"lottery": lottery_code, "notified": sent, "failed": failed}
