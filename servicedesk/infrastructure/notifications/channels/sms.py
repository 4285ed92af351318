"""SMS channel; the gateway to an SMS provider is injected."""

from __future__ import annotations

import re
from typing import Protocol

from servicedesk.domain.entities import DeliveryChannel, Notification, User
from servicedesk.domain.errors import ChannelDeliveryError

from .base import DeliveryOutcome, NotificationChannel

SMS_MAX_LENGTH = 160
_E164_PATTERN = re.compile(r"^\+\d{7,15}$")


class SmsGateway(Protocol):
    async def send_sms(self, phone_number: str, text: str) -> None:
        """Deliver ``text`` to ``phone_number``; raise on rejection."""
        ...


class SmsChannel(NotificationChannel):
    """Send a one-segment text; requires an E.164 phone number on file."""

    def __init__(self, gateway: SmsGateway | None = None) -> None:
        self._gateway = gateway

    @property
    def channel(self) -> DeliveryChannel:
        return DeliveryChannel.SMS

    async def send(self, notification: Notification, recipient: User) -> DeliveryOutcome:
        phone_number = (recipient.phone_number or "").strip()
        if not phone_number:
            raise ChannelDeliveryError("recipient has no phone number", code="NO_PHONE")
        if not _E164_PATTERN.match(phone_number):
            raise ChannelDeliveryError(
                f"phone number must be in E.164 format: {phone_number}", code="INVALID_PHONE"
            )
        if self._gateway is None:
            raise ChannelDeliveryError("SMS gateway is not configured", code="NOT_CONFIGURED")

        try:
            await self._gateway.send_sms(phone_number, format_sms(notification))
        except Exception as exc:
            raise ChannelDeliveryError(f"SMS gateway rejected the message: {exc}") from exc
        return DeliveryOutcome.sent(self.channel, phone_number)


def format_sms(notification: Notification) -> str:
    text = f"{notification.title}: {notification.message}"
    if len(text) <= SMS_MAX_LENGTH:
        return text
    return text[: SMS_MAX_LENGTH - 3].rstrip() + "..."


__all__ = ["SmsChannel", "SmsGateway", "format_sms"]
