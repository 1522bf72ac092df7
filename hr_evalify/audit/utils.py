from __future__ import annotations

from django.contrib.auth import get_user_model

from .models import AuditLog


def client_ip(request) -> str:
    if request is None:
        return ""
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "") or ""


def log_action(  # noqa: PLR0913
    action: str,
    *,
    actor: object | None = None,
    message: str = "",
    model_name: str = "",
    record_id: int | None = None,
    before: dict | list | None = None,
    after: dict | list | None = None,
    ip_address: str = "",
) -> AuditLog:
    """Persist one audit row. Non-user actors are recorded as system."""

    user_model = get_user_model()
    actor_user = actor if isinstance(actor, user_model) else None
    return AuditLog.objects.create(
        action=action,
        actor=actor_user,
        message=message,
        model_name=model_name,
        record_id=record_id,
        before=before,
        after=after,
        ip_address=ip_address,
    )
