import json
import logging
import time

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = ("password", "setup_secret", "card_number", "cvv")
MAX_LOGGED_BODY = 2000


def redact_body(raw):
    """Return a loggable version of a request body with secrets masked."""
    try:
        data = json.loads(raw)
    except ValueError:
        return raw[:MAX_LOGGED_BODY]

    if isinstance(data, dict):
        for field in SENSITIVE_FIELDS:
            if field in data:
                data[field] = "***"
    return json.dumps(data)[:MAX_LOGGED_BODY]


class RequestResponseLoggingMiddleware:
    """
    Logs every API call: method, path, acting user, status and duration.

    Request bodies of write calls are logged with sensitive fields masked;
    response bodies are not logged since prediction details carry paid content.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not request.path.startswith("/api/"):
            return self.get_response(request)

        request_body = ""
        content_type = request.META.get("CONTENT_TYPE", "")
        if request.method in ("POST", "PUT", "PATCH"):
            if "multipart/form-data" in content_type:
                request_body = "<multipart body not logged>"
            else:
                try:
                    request_body = redact_body(request.body.decode("utf-8"))
                except UnicodeDecodeError:
                    request_body = "<undecodable body>"

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        user = getattr(request, "user", None)
        user_id = user.pk if user is not None and user.is_authenticated else None

        logger.info(
            "API %s %s user=%s status=%d duration=%.1fms body=%s",
            request.method,
            request.get_full_path(),
            user_id,
            response.status_code,
            elapsed_ms,
            request_body,
        )
        return response
