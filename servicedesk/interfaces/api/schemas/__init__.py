from .auth import CurrentUserRead, Token
from .notification import (
    BroadcastResultRead,
    BulkOperationRead,
    CleanupResultRead,
    NotificationActionSchema,
    NotificationBroadcast,
    NotificationCreate,
    NotificationPageRead,
    NotificationRead,
    NotificationStatsRead,
    PresenceRead,
    UnreadCountRead,
)

__all__ = [
    "BroadcastResultRead",
    "BulkOperationRead",
    "CleanupResultRead",
    "CurrentUserRead",
    "NotificationActionSchema",
    "NotificationBroadcast",
    "NotificationCreate",
    "NotificationPageRead",
    "NotificationRead",
    "NotificationStatsRead",
    "PresenceRead",
    "Token",
    "UnreadCountRead",
]
