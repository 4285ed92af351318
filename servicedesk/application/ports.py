"""Contracts the notification core expects from its collaborators.

Persistence, the user directory and the realtime transport live outside the
core; the infrastructure layer provides SQLAlchemy and websocket backed
implementations of these protocols.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Protocol

from servicedesk.domain.entities import (
    Notification,
    NotificationCategory,
    NotificationFilters,
    NotificationStatus,
    PageRequest,
    User,
)


class UserDirectory(Protocol):
    """Read access to user accounts and their contact data."""

    async def get_user(self, user_id: int) -> User | None: ...

    async def list_active_ids_by_role(self, role: str) -> list[int]: ...

    async def list_active_ids(self) -> list[int]: ...


class NotificationStore(Protocol):
    """Persistence of notification records.

    Every mutating call is atomic for the record it touches. The store does not
    check ownership; callers do.
    """

    async def create(self, notification: Notification) -> Notification: ...

    async def get(self, notification_id: int) -> Notification:
        """Return the record or raise ``NotificationNotFoundError``."""
        ...

    async def list_for_user(
        self,
        user_id: int,
        filters: NotificationFilters,
        page: PageRequest,
        *,
        now: datetime,
    ) -> tuple[list[Notification], int]: ...

    async def update(
        self,
        notification_id: int,
        changes: Mapping[str, Any],
        *,
        expected_status: Iterable[NotificationStatus] | None = None,
    ) -> Notification:
        """Apply ``changes`` and return the stored record.

        When ``expected_status`` is given the update only happens while the
        record is in one of those statuses; otherwise
        ``NotificationPreconditionFailed`` is raised.
        """
        ...

    async def delete(self, notification_id: int) -> bool: ...

    async def delete_for_user(self, user_id: int) -> int: ...

    async def count_unread(self, user_id: int, *, now: datetime) -> int: ...

    async def count_by_category(
        self, user_id: int
    ) -> dict[NotificationCategory, int]: ...

    async def count_by_status(self, user_id: int) -> dict[NotificationStatus, int]:
        """Count every record of the user, expired ones included, per status."""
        ...

    async def mark_all_read(self, user_id: int, *, read_at: datetime) -> int: ...

    async def archive_read(self, user_id: int, *, archived_at: datetime) -> int: ...

    async def delete_expired_before(self, cutoff: datetime) -> int: ...

    async def delete_settled_before(self, cutoff: datetime) -> int:
        """Delete READ and ARCHIVED records created before ``cutoff``."""
        ...


class ConnectionTransport(Protocol):
    """Pushes a JSON payload to one live connection."""

    async def send_to_handle(self, handle: Any, payload: dict[str, Any]) -> None: ...


__all__ = ["ConnectionTransport", "NotificationStore", "UserDirectory"]
