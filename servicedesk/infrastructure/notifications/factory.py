"""Wire the notification service to its SQL, websocket and email adapters."""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from servicedesk.application.ports import ConnectionTransport
from servicedesk.application.use_cases.notifications import (
    NotificationService,
    RecipientResolver,
)
from servicedesk.config import Settings
from servicedesk.infrastructure.email import send_email
from servicedesk.infrastructure.stores import SqlNotificationStore, SqlUserDirectory
from servicedesk.utils import now_in_app_timezone

from .channels import (
    EmailChannel,
    InAppChannel,
    PushChannel,
    PushGateway,
    SmsChannel,
    SmsGateway,
)
from .channels.email import EmailSender
from .orchestrator import DeliveryOrchestrator
from .presence import PresenceRegistry
from .publisher import RealtimePublisher
from .transport import WebSocketTransport
from .worker import DeliveryWorker


def build_notification_service(
    settings: Settings,
    session_factory: Callable[[], Session],
    presence: PresenceRegistry,
    *,
    transport: ConnectionTransport | None = None,
    email_sender: EmailSender = send_email,
    push_gateway: PushGateway | None = None,
    sms_gateway: SmsGateway | None = None,
    clock=now_in_app_timezone,
) -> NotificationService:
    """Return a :class:`NotificationService` backed by the SQL stores."""

    transport = transport or WebSocketTransport()
    store = SqlNotificationStore(session_factory)
    directory = SqlUserDirectory(session_factory)

    orchestrator = DeliveryOrchestrator(
        store,
        directory,
        [
            InAppChannel(presence, transport),
            EmailChannel(email_sender),
            PushChannel(push_gateway),
            SmsChannel(sms_gateway),
        ],
        timeout_seconds=settings.channel_timeout_seconds,
    )
    return NotificationService(
        store,
        directory,
        RecipientResolver(directory),
        DeliveryWorker(orchestrator),
        publisher=RealtimePublisher(presence, transport),
        clock=clock,
        ttl_days=settings.notification_ttl_days,
        retention_days=settings.notification_retention_days,
        page_size=settings.notification_page_size,
        max_page_size=settings.notification_max_page_size,
        broadcast_max_recipients=settings.broadcast_max_recipients,
    )


__all__ = ["build_notification_service"]
