"""Utility helpers to push notification events to online users."""

from __future__ import annotations

import copy
import logging
from typing import Any

from servicedesk.application.ports import ConnectionTransport
from servicedesk.domain.entities import Notification

from .presence import PresenceRegistry

logger = logging.getLogger(__name__)


class RealtimePublisher:
    """Best-effort delivery of realtime events to a user's live connection."""

    def __init__(self, presence: PresenceRegistry, transport: ConnectionTransport) -> None:
        self._presence = presence
        self._transport = transport

    async def publish(self, user_id: int, *, event_type: str, payload: Any) -> bool:
        """Send ``event_type`` to ``user_id`` if online; return whether it went out."""

        handle = self._presence.handle_for(user_id)
        if handle is None:
            return False

        message = {"type": event_type, "data": copy.deepcopy(payload)}
        try:
            await self._transport.send_to_handle(handle, message)
        except Exception as exc:
            logger.warning("Realtime event %s to user %s failed: %s", event_type, user_id, exc)
            return False
        return True


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    related = notification.related_entity
    return {
        "id": notification.id,
        "recipient_id": notification.recipient_id,
        "sender_id": notification.sender_id,
        "title": notification.title,
        "message": notification.message,
        "category": notification.category.value,
        "priority": notification.priority.value,
        "status": notification.status.value,
        "delivery_status": notification.delivery_status.value,
        "related_entity": (
            {"kind": related.kind.value, "entity_id": related.entity_id} if related else None
        ),
        "link": notification.link,
        "actions": [
            {
                "label": action.label,
                "url": action.url,
                "method": action.method.value,
                "data": action.data,
            }
            for action in notification.actions
        ],
        "is_system_generated": notification.is_system_generated,
        "created_at": _iso_or_none(notification.created_at),
        "read_at": _iso_or_none(notification.read_at),
        "expires_at": _iso_or_none(notification.expires_at),
    }


def _iso_or_none(value) -> str | None:
    return value.isoformat() if value else None


__all__ = ["RealtimePublisher", "serialize_notification"]
