from predictions.utils.sms import normalize_phone_number, send_sms

__all__ = ["normalize_phone_number", "send_sms"]
