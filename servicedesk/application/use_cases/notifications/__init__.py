"""Notification use cases."""

from .events import (
    notify_equipment_assigned,
    notify_incident_assigned,
    notify_incident_created,
    notify_incident_resolved,
    notify_incident_updated,
)
from .resolver import RecipientResolver, Resolution
from .service import BroadcastResult, NotificationService, NotificationStats
from .validators import MESSAGE_MAX_LENGTH, TITLE_MAX_LENGTH, validate_draft

__all__ = [
    "BroadcastResult",
    "MESSAGE_MAX_LENGTH",
    "NotificationService",
    "NotificationStats",
    "RecipientResolver",
    "Resolution",
    "TITLE_MAX_LENGTH",
    "notify_equipment_assigned",
    "notify_incident_assigned",
    "notify_incident_created",
    "notify_incident_resolved",
    "notify_incident_updated",
    "validate_draft",
]
