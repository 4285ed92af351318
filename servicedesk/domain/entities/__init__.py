"""Domain entities exposed by the application."""

from .audience import Audience, AudienceKind
from .notification import (
    ActionMethod,
    DeliveryChannel,
    DeliveryStatus,
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationDraft,
    NotificationFilters,
    NotificationPage,
    NotificationPriority,
    NotificationStatus,
    PageRequest,
    RelatedEntity,
    RelatedEntityKind,
)
from .role import Role
from .user import User

__all__ = [
    "ActionMethod",
    "Audience",
    "AudienceKind",
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
    "Role",
    "User",
]
