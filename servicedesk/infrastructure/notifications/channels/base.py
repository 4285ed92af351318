"""Notification channel abstract base class.

All channel implementations (in-app, email, push, SMS) implement this
interface and are iterated uniformly by the delivery orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from servicedesk.domain.entities import DeliveryChannel, Notification, User


class OutcomeStatus(str, Enum):
    SENT = "sent"
    DEFERRED = "deferred"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one channel attempt for one notification."""

    channel: DeliveryChannel
    status: OutcomeStatus
    detail: str | None = None

    @property
    def is_failure(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    @classmethod
    def sent(cls, channel: DeliveryChannel, detail: str | None = None) -> "DeliveryOutcome":
        return cls(channel=channel, status=OutcomeStatus.SENT, detail=detail)

    @classmethod
    def deferred(cls, channel: DeliveryChannel, detail: str | None = None) -> "DeliveryOutcome":
        return cls(channel=channel, status=OutcomeStatus.DEFERRED, detail=detail)

    @classmethod
    def failed(cls, channel: DeliveryChannel, detail: str) -> "DeliveryOutcome":
        return cls(channel=channel, status=OutcomeStatus.FAILED, detail=detail)


class NotificationChannel(ABC):
    """Deliver a stored notification through one mechanism.

    Implementations return a SENT or DEFERRED outcome and raise
    :class:`~servicedesk.domain.errors.ChannelDeliveryError` on hard failures
    (missing contact data, transport rejection).
    """

    @property
    @abstractmethod
    def channel(self) -> DeliveryChannel:
        """Channel identifier used for routing and diagnostics."""

    @abstractmethod
    async def send(self, notification: Notification, recipient: User) -> DeliveryOutcome:
        """Hand ``notification`` to the channel transport for ``recipient``."""


__all__ = ["DeliveryOutcome", "NotificationChannel", "OutcomeStatus"]
