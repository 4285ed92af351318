"""In-app channel pushing notifications over the user's live connection."""

from __future__ import annotations

import logging

from servicedesk.application.ports import ConnectionTransport
from servicedesk.domain.entities import DeliveryChannel, Notification, User
from servicedesk.domain.errors import ChannelDeliveryError

from ..presence import PresenceRegistry
from ..publisher import serialize_notification
from .base import DeliveryOutcome, NotificationChannel

logger = logging.getLogger(__name__)


class InAppChannel(NotificationChannel):
    """Push to an online recipient; offline recipients pick it up on next fetch."""

    def __init__(self, presence: PresenceRegistry, transport: ConnectionTransport) -> None:
        self._presence = presence
        self._transport = transport

    @property
    def channel(self) -> DeliveryChannel:
        return DeliveryChannel.IN_APP

    async def send(self, notification: Notification, recipient: User) -> DeliveryOutcome:
        handle = self._presence.handle_for(recipient.id)
        if handle is None:
            return DeliveryOutcome.deferred(self.channel, "recipient offline")

        payload = {"type": "notification", "data": serialize_notification(notification)}
        try:
            await self._transport.send_to_handle(handle, payload)
        except Exception as exc:
            # The connection may be closing while we look it up.
            raise ChannelDeliveryError(
                f"live connection rejected the message: {exc}", code="TRANSPORT_ERROR"
            ) from exc

        logger.debug("Pushed notification %s to user %s", notification.id, recipient.id)
        return DeliveryOutcome.sent(self.channel)


__all__ = ["InAppChannel"]
