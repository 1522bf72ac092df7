"""Best-effort notification delivery.

Every channel here swallows and logs its own failures: a notification that
cannot be delivered never affects the workflow operation that triggered it.
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction

from .models import Notification
from .telegram import get_telegram_client_from_settings

logger = logging.getLogger(__name__)

Kind = Notification.Type

_TEMPLATES: dict[str, tuple[str, str]] = {
    Kind.EVALUATION_REQUESTED: (
        "Evaluation assigned: {evaluee_name}",
        "Please evaluate {evaluee_name} for {period} {year}.",
    ),
    Kind.SELF_EVALUATION_REQUESTED: (
        "Self evaluation for {period} {year}",
        "Your self evaluation for {period} {year} is open.",
    ),
    Kind.REVIEW_REQUESTED: (
        "Review requested: {evaluee_name}",
        "The evaluation of {evaluee_name} for {period} {year} awaits your review.",
    ),
    Kind.REJECTED_RETURNED: (
        "Evaluation returned: {evaluee_name}",
        "The evaluation of {evaluee_name} for {period} {year} was returned. "
        "Reason: {reason}",
    ),
    Kind.RESULT_READY: (
        "Your evaluation result for {period} {year}",
        "Your evaluation is complete. Score {score} ({percentage}%), grade {grade}.",
    ),
    Kind.EVALUATION_COMPLETED: (
        "Evaluation completed",
        "{evaluee_name} {period} {year}: score {score}, grade {grade}.",
    ),
    Kind.NEW_CYCLE_CREATED: (
        "New evaluation cycle",
        "{count} evaluation(s) created for {period} {year} by {actor_name}.",
    ),
}


class _Defaults(dict):
    def __missing__(self, key):
        return "-"


def render(kind: str, payload: dict[str, Any]) -> tuple[str, str]:
    title, body = _TEMPLATES.get(kind, ("Notification", "{message}"))
    values = _Defaults(payload)
    return title.format_map(values), body.format_map(values)


def related_link(payload: dict[str, Any]) -> str:
    evaluation_id = payload.get("evaluation_id")
    if not evaluation_id:
        return ""
    base = getattr(settings, "EVALIFY_BASE_URL", "").rstrip("/")
    return f"{base}/evaluations/{evaluation_id}"


def _recipient_user(recipient):
    # Accept either an Employee or a User.
    return getattr(recipient, "user", recipient)


def send_email(user, subject: str, body: str) -> bool:
    email = getattr(user, "email", "")
    if not email:
        logger.info("No e-mail address for user %s; skipping", getattr(user, "pk", None))
        return False
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [email])
    except Exception:
        logger.exception("E-mail delivery to %s failed", email)
        return False
    return True


def send_notification(
    kind: str, recipient, payload: dict[str, Any]
) -> Notification | None:
    """Create an in-app notification and mirror it by e-mail.

    ``recipient`` may be an Employee or a User. Returns the notification, or
    None when nothing could be stored.
    """

    if recipient is None:
        return None
    user = _recipient_user(recipient)
    title, message = render(kind, payload)
    link = related_link(payload)
    try:
        notification = Notification.objects.create(
            recipient=user,
            title=title,
            message=message,
            notification_type=kind,
            related_link=link,
        )
    except Exception:
        logger.exception("Storing %s notification for user %s failed", kind, user.pk)
        notification = None
    send_email(user, title, f"{message}\n\n{link}" if link else message)
    return notification


def notify_admin_channel(kind: str, payload: dict[str, Any]) -> bool:
    """Post a message to the admin chat. False when disabled or failing."""

    client = get_telegram_client_from_settings()
    if client is None:
        return False
    title, message = render(kind, payload)
    try:
        return client.send_message(f"<b>{title}</b>\n{message}")
    except Exception:
        logger.exception("Admin channel message %s failed", kind)
        return False


def send_notification_on_commit(kind: str, recipient, payload: dict[str, Any]) -> None:
    transaction.on_commit(lambda: send_notification(kind, recipient, payload))


def notify_admin_channel_on_commit(kind: str, payload: dict[str, Any]) -> None:
    transaction.on_commit(lambda: notify_admin_channel(kind, payload))
