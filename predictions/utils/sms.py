import logging
import re

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

SMS_BASE_URL = getattr(settings, "SMS_BASE_URL", "https://api.twilio.com/2010-04-01")
SMS_TIMEOUT = getattr(settings, "SMS_TIMEOUT", 10)

DEFAULT_COUNTRY_CODE = "1"


def normalize_phone_number(phone: str) -> str:
    """
    Normalise a phone number to E.164.

    Ten-digit numbers are taken as US/Canada numbers. Returns an empty string
    when nothing usable remains.
    """
    if not phone:
        return ""
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return ""
    if phone.strip().startswith("+"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+{DEFAULT_COUNTRY_CODE}{digits}"
    return f"+{digits}"


def send_sms(phone: str, message: str) -> dict:
    """
    Send one SMS through the provider's REST API.

    Without configured credentials the message is only logged, which keeps
    development and test environments offline.

    Returns:
        dict with keys:
            - success (bool): Whether the provider accepted the message.
            - response (dict): The provider's response or error details.
    """
    to = normalize_phone_number(phone)
    if not to:
        logger.warning("SMS skipped: unusable phone number %r", phone)
        return {"success": False, "response": {"error": "invalid_phone"}}

    account_sid = getattr(settings, "SMS_ACCOUNT_SID", "")
    auth_token = getattr(settings, "SMS_AUTH_TOKEN", "")
    from_number = getattr(settings, "SMS_FROM_NUMBER", "")

    if not (account_sid and auth_token and from_number):
        logger.info("SMS (mock) to=%s message=%s", to, message)
        return {"success": True, "response": {"mock": True}}

    try:
        response = requests.post(
            f"{SMS_BASE_URL}/Accounts/{account_sid}/Messages.json",
            data={"To": to, "From": from_number, "Body": message},
            auth=(account_sid, auth_token),
            timeout=SMS_TIMEOUT,
        )
        response_data = response.json()

        if response.ok:
            logger.info("SMS sent: to=%s sid=%s", to, response_data.get("sid"))
            return {"success": True, "response": response_data}

        logger.warning(
            "SMS rejected: to=%s status=%d response=%s",
            to,
            response.status_code,
            response_data,
        )
        return {"success": False, "response": response_data}

    except requests.exceptions.Timeout as exc:
        logger.error("SMS provider timeout: to=%s error=%s", to, str(exc))
        return {"success": False, "response": {"error": "timeout", "detail": str(exc)}}

    except requests.exceptions.JSONDecodeError as exc:
        logger.error("SMS provider returned invalid JSON: to=%s error=%s", to, str(exc))
        return {
            "success": False,
            "response": {"error": "invalid_response", "detail": str(exc)},
        }

    except requests.exceptions.RequestException as exc:
        logger.error("SMS provider request error: to=%s error=%s", to, str(exc))
        return {
            "success": False,
            "response": {"error": "request_error", "detail": str(exc)},
        }
