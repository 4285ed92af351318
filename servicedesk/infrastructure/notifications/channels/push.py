"""Push channel; the gateway to a push provider is injected."""

from __future__ import annotations

from typing import Any, Protocol

from servicedesk.domain.entities import DeliveryChannel, Notification, User
from servicedesk.domain.errors import ChannelDeliveryError

from .base import DeliveryOutcome, NotificationChannel


class PushGateway(Protocol):
    async def push(self, token: str, *, title: str, body: str, data: dict[str, Any]) -> None:
        """Deliver to the device ``token``; raise on rejection."""
        ...


class PushChannel(NotificationChannel):
    def __init__(self, gateway: PushGateway | None = None) -> None:
        self._gateway = gateway

    @property
    def channel(self) -> DeliveryChannel:
        return DeliveryChannel.PUSH

    async def send(self, notification: Notification, recipient: User) -> DeliveryOutcome:
        if not recipient.push_token:
            raise ChannelDeliveryError("recipient has no registered device", code="NO_PUSH_TOKEN")
        if self._gateway is None:
            raise ChannelDeliveryError("push gateway is not configured", code="NOT_CONFIGURED")

        try:
            await self._gateway.push(
                recipient.push_token,
                title=notification.title,
                body=notification.message,
                data={"notification_id": notification.id, "link": notification.link},
            )
        except Exception as exc:
            raise ChannelDeliveryError(f"push gateway rejected the message: {exc}") from exc
        return DeliveryOutcome.sent(self.channel)


__all__ = ["PushChannel", "PushGateway"]
