import logging

logger = logging.getLogger("auth")


def log_auth_event(action: str, request, user=None, status: str = "success", extra: dict | None = None):
    """Emit a structured `auth.<action>` event with user, ip and status.

    The event name is the log message so production sampling can match it;
    the details travel as record extras.
    """
    event = f"auth.{action}"
    payload = {
        "event": event,
        "ip": request.META.get("REMOTE_ADDR"),
        "status": status,
    }
    if user is not None:
        payload["user_id"] = getattr(user, "id", None)
        payload["email"] = getattr(user, "email", None)
    if extra:
        payload.update(extra)
    logger.info(event, extra=payload)
