"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from servicedesk.domain.entities import (
    ActionMethod,
    AudienceKind,
    DeliveryChannel,
    DeliveryStatus,
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    NotificationStatus,
    RelatedEntityKind,
)


class NotificationActionSchema(BaseModel):
    label: str = Field(..., min_length=1, max_length=50)
    url: str = Field(..., min_length=1)
    method: ActionMethod = ActionMethod.GET
    data: dict[str, Any] | None = None


class NotificationContent(BaseModel):
    """Fields shared by single and broadcast creation requests."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=500)
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    channels: list[DeliveryChannel] = Field(
        default_factory=lambda: [DeliveryChannel.IN_APP], min_length=1
    )
    related_entity_kind: RelatedEntityKind | None = None
    related_entity_id: str | None = None
    link: str | None = None
    actions: list[NotificationActionSchema] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime | None = None

    def to_draft(self, sender_id: int | None) -> NotificationDraft:
        return NotificationDraft(
            title=self.title,
            message=self.message,
            category=self.category,
            priority=self.priority,
            channels=tuple(self.channels),
            sender_id=sender_id,
            related_entity_kind=self.related_entity_kind,
            related_entity_id=self.related_entity_id,
            link=self.link,
            actions=[
                NotificationAction(
                    label=action.label, url=action.url, method=action.method, data=action.data
                )
                for action in self.actions
            ],
            metadata=dict(self.metadata),
            expires_at=self.expires_at,
        )


class NotificationCreate(NotificationContent):
    recipient_id: int = Field(..., ge=1)


class NotificationBroadcast(NotificationContent):
    """Fan-out request; ``user_ids`` or ``role`` select the audience by ``audience``."""

    audience: AudienceKind = AudienceKind.ALL
    user_ids: list[int] = Field(default_factory=list)
    role: str | None = None


class RelatedEntityRead(BaseModel):
    kind: RelatedEntityKind
    entity_id: str


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: int
    recipient_id: int
    sender_id: int | None = None
    title: str
    message: str
    category: NotificationCategory
    priority: NotificationPriority
    status: NotificationStatus
    delivery_status: DeliveryStatus
    channels: list[DeliveryChannel]
    related_entity: RelatedEntityRead | None = None
    link: str | None = None
    actions: list[NotificationActionSchema] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    is_system_generated: bool
    time_elapsed: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    read_at: datetime | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_entity(cls, notification: Notification) -> "NotificationRead":
        related = notification.related_entity
        return cls(
            id=notification.id or 0,
            recipient_id=notification.recipient_id,
            sender_id=notification.sender_id,
            title=notification.title,
            message=notification.message,
            category=notification.category,
            priority=notification.priority,
            status=notification.status,
            delivery_status=notification.delivery_status,
            channels=list(notification.channels),
            related_entity=(
                RelatedEntityRead(kind=related.kind, entity_id=related.entity_id)
                if related
                else None
            ),
            link=notification.link,
            actions=[
                NotificationActionSchema(
                    label=action.label, url=action.url, method=action.method, data=action.data
                )
                for action in notification.actions
            ],
            metadata=notification.metadata,
            is_read=notification.is_read,
            is_system_generated=notification.is_system_generated,
            time_elapsed=notification.time_elapsed(),
            created_at=notification.created_at,
            updated_at=notification.updated_at,
            read_at=notification.read_at,
            expires_at=notification.expires_at,
        )


class NotificationPageRead(BaseModel):
    items: list[NotificationRead]
    total: int
    page: int
    size: int
    pages: int
    unread_count: int


class UnreadCountRead(BaseModel):
    unread_count: int


class NotificationStatsRead(BaseModel):
    total: int
    unread: int
    read: int
    read_percentage: float
    by_category: dict[str, int]


class BulkOperationRead(BaseModel):
    """Number of records touched by a bulk operation."""

    count: int


class BroadcastResultRead(BaseModel):
    created: int
    notification_ids: list[int]
    unresolved: list[int] = Field(default_factory=list)
    failed: dict[int, str] = Field(default_factory=dict)


class CleanupResultRead(BaseModel):
    settled_removed: int
    expired_removed: int
    retention_days: int


class PresenceRead(BaseModel):
    total: int
    by_role: dict[str, int]


__all__ = [
    "BroadcastResultRead",
    "BulkOperationRead",
    "CleanupResultRead",
    "NotificationActionSchema",
    "NotificationBroadcast",
    "NotificationContent",
    "NotificationCreate",
    "NotificationPageRead",
    "NotificationRead",
    "NotificationStatsRead",
    "PresenceRead",
    "RelatedEntityRead",
    "UnreadCountRead",
]
