"""Registry of users currently holding a realtime connection."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from servicedesk.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceEntry:
    """Where to reach an online user and which role they hold."""

    handle: Any
    role: str | None
    connected_at: datetime = field(default_factory=now_in_app_timezone)


class PresenceRegistry:
    """Map of online users to their connection handle.

    Entries are immutable and swapped under a lock, so a lookup sees either the
    previous or the new mapping. One registry is built at startup and handed to
    the connection handler (the only writer) and to the in-app channel.
    """

    def __init__(self) -> None:
        self._entries: dict[int, PresenceEntry] = {}
        self._lock = threading.Lock()

    def register(self, user_id: int, handle: Any, role: str | None = None) -> PresenceEntry | None:
        """Record ``handle`` for ``user_id`` and return the entry it replaced."""

        entry = PresenceEntry(handle=handle, role=role.lower() if role else None)
        with self._lock:
            previous = self._entries.get(user_id)
            self._entries[user_id] = entry
        logger.info("User %s connected (role=%s)", user_id, entry.role)
        return previous

    def unregister(self, user_id: int, handle: Any | None = None) -> bool:
        """Forget ``user_id``.

        When ``handle`` is given the entry is only removed if it still points at
        that handle, so a late disconnect of a replaced connection is a no-op.
        """

        with self._lock:
            current = self._entries.get(user_id)
            if current is None:
                return False
            if handle is not None and current.handle is not handle:
                return False
            del self._entries[user_id]
        logger.info("User %s disconnected", user_id)
        return True

    def handle_for(self, user_id: int) -> Any | None:
        entry = self._entries.get(user_id)
        return entry.handle if entry else None

    def is_online(self, user_id: int) -> bool:
        return user_id in self._entries

    def members_of(self, role: str) -> set[int]:
        wanted = role.lower()
        with self._lock:
            snapshot = list(self._entries.items())
        return {user_id for user_id, entry in snapshot if entry.role == wanted}

    def online_counts(self) -> dict[str, Any]:
        """Return the number of online users, overall and per role."""

        with self._lock:
            roles = [entry.role or "unknown" for entry in self._entries.values()]
        return {"total": len(roles), "by_role": dict(Counter(roles))}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries


__all__ = ["PresenceEntry", "PresenceRegistry"]
