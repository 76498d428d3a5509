from rest_framework.response import Response


def error_response(exc, status_code):
    body = {"error": str(exc)}
    code = getattr(exc, "code", None)
    if code:
        body["code"] = code
    return Response(body, status=status_code)


def client_meta(request):
    """The caller's IP address and user agent, for the purchase audit trail."""
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    ip_address = forwarded.split(",")[0].strip() or request.META.get("REMOTE_ADDR")
    return {
        "ip_address": ip_address or None,
        "user_agent": request.META.get("HTTP_USER_AGENT", "")[:255],
    }
