"""Email channel delivering notifications through SendGrid."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial

from anyio import to_thread

from servicedesk.domain.entities import DeliveryChannel, Notification, User
from servicedesk.domain.errors import ChannelDeliveryError
from servicedesk.infrastructure.email import render_notification_email, send_email

from .base import DeliveryOutcome, NotificationChannel

EmailSender = Callable[[str, str, str], bool]


class EmailChannel(NotificationChannel):
    """Send the rendered notification to the recipient's email address.

    ``sender`` follows the ``send_email(subject, html, recipient) -> bool``
    signature and runs in a worker thread because the SendGrid client blocks;
    a cancelled send is abandoned rather than awaited.
    """

    def __init__(self, sender: EmailSender = send_email) -> None:
        self._sender = sender

    @property
    def channel(self) -> DeliveryChannel:
        return DeliveryChannel.EMAIL

    async def send(self, notification: Notification, recipient: User) -> DeliveryOutcome:
        if not recipient.email:
            raise ChannelDeliveryError("recipient has no email address", code="NO_EMAIL")

        subject, html = render_notification_email(notification)
        delivered = await to_thread.run_sync(
            partial(self._sender, subject, html, recipient.email), abandon_on_cancel=True
        )
        if not delivered:
            raise ChannelDeliveryError("email transport rejected the message", code="EMAIL_REJECTED")
        return DeliveryOutcome.sent(self.channel, recipient.email)


__all__ = ["EmailChannel", "EmailSender"]
