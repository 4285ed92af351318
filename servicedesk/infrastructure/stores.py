"""Async adapters exposing the SQLAlchemy repositories to the notification core.

Each call opens its own session in a worker thread, so a single record
mutation is one transaction and the event loop never blocks on the database.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from functools import partial
from typing import Any, TypeVar

from anyio import to_thread
from sqlalchemy.orm import Session

from servicedesk.domain.entities import (
    Notification,
    NotificationCategory,
    NotificationFilters,
    NotificationStatus,
    PageRequest,
    User,
)
from servicedesk.domain.errors import NotificationNotFoundError
from servicedesk.infrastructure.repositories import NotificationRepository, UserRepository

T = TypeVar("T")


class _SessionScoped:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    async def _run(self, operation: Callable[[Session], T]) -> T:
        return await to_thread.run_sync(partial(self._in_session, operation))

    def _in_session(self, operation: Callable[[Session], T]) -> T:
        session = self._session_factory()
        try:
            return operation(session)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class SqlNotificationStore(_SessionScoped):
    """``NotificationStore`` backed by :class:`NotificationRepository`."""

    async def create(self, notification: Notification) -> Notification:
        return await self._run(lambda s: NotificationRepository(s).create(notification))

    async def get(self, notification_id: int) -> Notification:
        found = await self._run(lambda s: NotificationRepository(s).get(notification_id))
        if found is None:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
        return found

    async def list_for_user(
        self,
        user_id: int,
        filters: NotificationFilters,
        page: PageRequest,
        *,
        now: datetime,
    ) -> tuple[list[Notification], int]:
        return await self._run(
            lambda s: NotificationRepository(s).list_for_user(user_id, filters, page, now=now)
        )

    async def update(
        self,
        notification_id: int,
        changes: Mapping[str, Any],
        *,
        expected_status: Iterable[NotificationStatus] | None = None,
    ) -> Notification:
        expected = tuple(expected_status) if expected_status is not None else None
        return await self._run(
            lambda s: NotificationRepository(s).update(
                notification_id, changes, expected_status=expected
            )
        )

    async def delete(self, notification_id: int) -> bool:
        return await self._run(lambda s: NotificationRepository(s).delete(notification_id))

    async def delete_for_user(self, user_id: int) -> int:
        return await self._run(lambda s: NotificationRepository(s).delete_for_user(user_id))

    async def count_unread(self, user_id: int, *, now: datetime) -> int:
        return await self._run(lambda s: NotificationRepository(s).count_unread(user_id, now=now))

    async def count_by_category(self, user_id: int) -> dict[NotificationCategory, int]:
        return await self._run(lambda s: NotificationRepository(s).count_by_category(user_id))

    async def count_by_status(self, user_id: int) -> dict[NotificationStatus, int]:
        return await self._run(lambda s: NotificationRepository(s).count_by_status(user_id))

    async def mark_all_read(self, user_id: int, *, read_at: datetime) -> int:
        return await self._run(
            lambda s: NotificationRepository(s).mark_all_read(user_id, read_at=read_at)
        )

    async def archive_read(self, user_id: int, *, archived_at: datetime) -> int:
        return await self._run(
            lambda s: NotificationRepository(s).archive_read(user_id, archived_at=archived_at)
        )

    async def delete_expired_before(self, cutoff: datetime) -> int:
        return await self._run(lambda s: NotificationRepository(s).delete_expired_before(cutoff))

    async def delete_settled_before(self, cutoff: datetime) -> int:
        return await self._run(lambda s: NotificationRepository(s).delete_settled_before(cutoff))


class SqlUserDirectory(_SessionScoped):
    """``UserDirectory`` backed by :class:`UserRepository`."""

    async def get_user(self, user_id: int) -> User | None:
        return await self._run(lambda s: UserRepository(s).get(user_id))

    async def list_active_ids_by_role(self, role: str) -> list[int]:
        return await self._run(lambda s: UserRepository(s).list_active_ids(role_alias=role))

    async def list_active_ids(self) -> list[int]:
        return await self._run(lambda s: UserRepository(s).list_active_ids())


__all__ = ["SqlNotificationStore", "SqlUserDirectory"]
