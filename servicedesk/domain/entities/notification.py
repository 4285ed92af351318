"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from servicedesk.utils import describe_elapsed, ensure_app_timezone, now_in_app_timezone


class NotificationCategory(str, Enum):
    SYSTEM = "SYSTEM"
    INCIDENT = "INCIDENT"
    EQUIPMENT = "EQUIPMENT"
    USER = "USER"
    REPORT = "REPORT"
    ALERT = "ALERT"


class NotificationPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class NotificationStatus(str, Enum):
    """Interaction state of the recipient with the notification."""

    UNREAD = "UNREAD"
    READ = "READ"
    ARCHIVED = "ARCHIVED"


class DeliveryStatus(str, Enum):
    """Outcome of the delivery attempt, independent of the read state."""

    PENDING = "PENDING"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class DeliveryChannel(str, Enum):
    IN_APP = "IN_APP"
    EMAIL = "EMAIL"
    PUSH = "PUSH"
    SMS = "SMS"


class RelatedEntityKind(str, Enum):
    INCIDENT = "INCIDENT"
    EQUIPMENT = "EQUIPMENT"
    USER = "USER"
    REPORT = "REPORT"


class ActionMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class RelatedEntity:
    """Reference to the domain object a notification talks about."""

    kind: RelatedEntityKind
    entity_id: str


@dataclass(frozen=True)
class NotificationAction:
    """Actionable link rendered next to a notification."""

    label: str
    url: str
    method: ActionMethod = ActionMethod.GET
    data: dict[str, Any] | None = None


@dataclass
class NotificationDraft:
    """Content requested by a caller before recipients are known.

    The related entity is given as two loose fields so the pair can be
    validated together when the draft is turned into notifications.
    """

    title: str
    message: str
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: tuple[DeliveryChannel, ...] = (DeliveryChannel.IN_APP,)
    sender_id: int | None = None
    related_entity_kind: RelatedEntityKind | None = None
    related_entity_id: str | None = None
    link: str | None = None
    actions: list[NotificationAction] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None


@dataclass
class Notification:
    """Information message delivered to a specific user."""

    id: int | None
    recipient_id: int
    title: str
    message: str
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    status: NotificationStatus = NotificationStatus.UNREAD
    delivery_status: DeliveryStatus = DeliveryStatus.PENDING
    channels: tuple[DeliveryChannel, ...] = (DeliveryChannel.IN_APP,)
    sender_id: int | None = None
    related_entity: RelatedEntity | None = None
    link: str | None = None
    actions: list[NotificationAction] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    read_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def is_read(self) -> bool:
        return self.status is not NotificationStatus.UNREAD

    @property
    def is_archived(self) -> bool:
        return self.status is NotificationStatus.ARCHIVED

    @property
    def is_system_generated(self) -> bool:
        return self.sender_id is None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return ``True`` once ``expires_at`` lies in the past."""

        if self.expires_at is None:
            return False
        now = now or now_in_app_timezone()
        return ensure_app_timezone(self.expires_at) <= ensure_app_timezone(now)

    def time_elapsed(self, now: datetime | None = None) -> str | None:
        if self.created_at is None:
            return None
        return describe_elapsed(self.created_at, now or now_in_app_timezone())


@dataclass(frozen=True)
class NotificationFilters:
    """Optional criteria applied when listing a user's notifications."""

    status: NotificationStatus | None = None
    category: NotificationCategory | None = None
    priority: NotificationPriority | None = None
    include_expired: bool = False


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


@dataclass
class NotificationPage:
    """One page of notifications plus the owner's unread counter."""

    items: list[Notification]
    total: int
    page: int
    size: int
    unread_count: int = 0

    @property
    def pages(self) -> int:
        if self.size <= 0:
            return 0
        return -(-self.total // self.size)


__all__ = [
    "ActionMethod",
    "DeliveryChannel",
    "DeliveryStatus",
    "Notification",
    "NotificationAction",
    "NotificationCategory",
    "NotificationDraft",
    "NotificationFilters",
    "NotificationPage",
    "NotificationPriority",
    "NotificationStatus",
    "PageRequest",
    "RelatedEntity",
    "RelatedEntityKind",
]
