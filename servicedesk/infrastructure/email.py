"""SendGrid email delivery used by the email notification channel."""

from __future__ import annotations

import json
import logging
from html import escape
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from servicedesk.config import get_settings
from servicedesk.domain.entities import Notification

logger = logging.getLogger(__name__)

_SUBJECT_PREFIX = "IT Service Desk"


def _describe_error_body(body: Any) -> str | None:
    """Turn a SendGrid error body (bytes, JSON text or parsed JSON) into text."""

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            body = json.loads(body)
        except json.JSONDecodeError:
            return body
    if not body:
        return None

    if isinstance(body, dict) and isinstance(body.get("errors"), list):
        messages = []
        for error in body["errors"]:
            if not isinstance(error, dict) or not error.get("message"):
                continue
            field = error.get("field")
            messages.append(f"{error['message']} (field: {field})" if field else str(error["message"]))
        if messages:
            return "; ".join(messages)
    if isinstance(body, list):
        return "; ".join(str(item) for item in body)
    return json.dumps(body, default=str)


def _report_failure(source: Any, *, prefix: str) -> None:
    """Log the status code and error details carried by a response or exception."""

    status_code = getattr(source, "status_code", None)
    details = _describe_error_body(getattr(source, "body", None))
    summary = f"{prefix} with status {status_code}" if status_code else prefix
    if details:
        logger.error("%s: %s", summary, details)
    else:
        logger.error("%s", summary)


def send_email(subject: str, html_content: str, recipient: str) -> bool:
    """Send one email; return ``False`` when SendGrid is unconfigured or rejects it."""

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email to %s", recipient)
        return False

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        response = SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except Exception as exc:
        if getattr(exc, "status_code", None) is None and getattr(exc, "body", None) is None:
            logger.exception("Error sending email via SendGrid: %s", exc)
        else:
            _report_failure(exc, prefix="SendGrid API request failed")
        return False

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        _report_failure(response, prefix="SendGrid API responded")
        return False
    return True


def render_notification_email(notification: Notification) -> tuple[str, str]:
    """Return the ``(subject, html)`` pair used to email ``notification``."""

    subject = f"{_SUBJECT_PREFIX}: {notification.title}"
    parts = [
        f"<p><strong>{escape(notification.title)}</strong></p>",
        f"<p>{escape(notification.message)}</p>",
        (
            f"<p>Category: {notification.category.value} · "
            f"Priority: {notification.priority.value}</p>"
        ),
    ]
    if notification.link:
        parts.append(f'<p><a href="{escape(notification.link)}">Open in the service desk</a></p>')
    for action in notification.actions:
        parts.append(f'<p><a href="{escape(action.url)}">{escape(action.label)}</a></p>')
    return subject, "".join(parts)


__all__ = ["render_notification_email", "send_email"]
