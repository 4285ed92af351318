"""Notification service used by workflows and API routes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol

from servicedesk.application.ports import NotificationStore, UserDirectory
from servicedesk.domain.entities import (
    Audience,
    Notification,
    NotificationCategory,
    NotificationDraft,
    NotificationFilters,
    NotificationPage,
    NotificationStatus,
    PageRequest,
)
from servicedesk.domain.errors import (
    NotificationAccessDenied,
    NotificationNotFoundError,
    NotificationPreconditionFailed,
    NotificationValidationError,
)
from servicedesk.utils import now_in_app_timezone

from .resolver import RecipientResolver
from .validators import build_related_entity, resolve_expiry, validate_draft

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class DeliveryScheduler(Protocol):
    def submit(self, notification: Notification) -> Any: ...

    async def drain(self, timeout: float | None = None) -> None: ...


class EventPublisher(Protocol):
    async def publish(self, user_id: int, *, event_type: str, payload: Any) -> bool: ...


@dataclass
class BroadcastResult:
    """Outcome of a fan-out request.

    ``unresolved`` lists explicit recipients that were unknown or inactive and
    ``failed`` maps recipients whose record could not be created to the reason.
    """

    created: list[Notification] = field(default_factory=list)
    unresolved: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    @property
    def created_count(self) -> int:
        return len(self.created)


@dataclass(frozen=True)
class NotificationStats:
    total: int
    unread: int
    read: int
    read_percentage: float
    by_category: dict[NotificationCategory, int]


class NotificationService:
    """Create notifications, hand them to delivery and manage their lifecycle.

    Delivery is never awaited by ``create``/``broadcast``: the persisted record
    is returned with ``PENDING`` delivery status and the scheduler writes the
    final status back once every channel has been attempted.
    """

    def __init__(
        self,
        store: NotificationStore,
        directory: UserDirectory,
        resolver: RecipientResolver,
        scheduler: DeliveryScheduler,
        *,
        publisher: EventPublisher | None = None,
        clock: Clock = now_in_app_timezone,
        ttl_days: int = 30,
        retention_days: int = 90,
        page_size: int = 20,
        max_page_size: int = 100,
        broadcast_max_recipients: int | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._resolver = resolver
        self._scheduler = scheduler
        self._publisher = publisher
        self._clock = clock
        self._ttl_days = ttl_days
        self._retention_days = retention_days
        self._page_size = page_size
        self._max_page_size = max_page_size
        self._broadcast_max_recipients = broadcast_max_recipients

    # Creation -----------------------------------------------------------------

    async def create(self, recipient_id: int | None, draft: NotificationDraft) -> Notification:
        """Persist one notification for ``recipient_id`` and schedule its delivery."""

        if recipient_id is None:
            raise NotificationValidationError("A recipient is required")

        draft = validate_draft(draft)
        recipient = await self._directory.get_user(recipient_id)
        if recipient is None:
            raise NotificationNotFoundError(f"User {recipient_id} not found")
        if not recipient.can_receive:
            raise NotificationValidationError(f"User {recipient_id} cannot receive notifications")

        now = self._clock()
        expires_at = resolve_expiry(draft.expires_at, now=now, ttl_days=self._ttl_days)
        return await self._persist_and_schedule(recipient_id, draft, now=now, expires_at=expires_at)

    async def broadcast(self, draft: NotificationDraft, audience: Audience) -> BroadcastResult:
        """Create one notification per resolved recipient of ``audience``.

        Validation problems with the draft itself abort the request; problems
        with individual recipients are reported in the result.
        """

        draft = validate_draft(draft)
        now = self._clock()
        expires_at = resolve_expiry(draft.expires_at, now=now, ttl_days=self._ttl_days)

        resolution = await self._resolver.resolve(audience)
        limit = self._broadcast_max_recipients
        if limit is not None and len(resolution.recipient_ids) > limit:
            raise NotificationValidationError(
                f"Broadcast resolves to {len(resolution.recipient_ids)} recipients; "
                f"the limit is {limit}"
            )

        result = BroadcastResult(unresolved=list(resolution.unresolved))
        for recipient_id in resolution.recipient_ids:
            try:
                notification = await self._persist_and_schedule(
                    recipient_id, draft, now=now, expires_at=expires_at
                )
            except Exception as exc:
                logger.exception("Could not create broadcast notification for user %s", recipient_id)
                result.failed[recipient_id] = str(exc) or exc.__class__.__name__
                continue
            result.created.append(notification)

        logger.info(
            "Broadcast '%s' to %s: %s created, %s unresolved, %s failed",
            draft.title,
            audience.kind.value,
            len(result.created),
            len(result.unresolved),
            len(result.failed),
        )
        return result

    async def _persist_and_schedule(
        self,
        recipient_id: int,
        draft: NotificationDraft,
        *,
        now: datetime,
        expires_at: datetime,
    ) -> Notification:
        notification = Notification(
            id=None,
            recipient_id=recipient_id,
            title=draft.title,
            message=draft.message,
            category=draft.category,
            priority=draft.priority,
            channels=draft.channels,
            sender_id=draft.sender_id,
            related_entity=build_related_entity(draft),
            link=draft.link,
            actions=list(draft.actions),
            metadata=dict(draft.metadata),
            created_at=now,
            expires_at=expires_at,
        )
        saved = await self._store.create(notification)
        self._scheduler.submit(saved)
        return saved

    # Queries ------------------------------------------------------------------

    async def get(self, notification_id: int, user_id: int) -> Notification:
        return await self._get_owned(notification_id, user_id)

    async def get_for_user(
        self,
        user_id: int,
        filters: NotificationFilters | None = None,
        page: PageRequest | None = None,
    ) -> NotificationPage:
        """Return one page of the user's notifications, newest first."""

        filters = filters or NotificationFilters()
        page = self._normalize_page(page)
        now = self._clock()
        items, total = await self._store.list_for_user(user_id, filters, page, now=now)
        unread = await self._store.count_unread(user_id, now=now)
        return NotificationPage(
            items=items, total=total, page=page.page, size=page.size, unread_count=unread
        )

    async def count_unread(self, user_id: int) -> int:
        return await self._store.count_unread(user_id, now=self._clock())

    async def stats(self, user_id: int) -> NotificationStats:
        """Totals over every stored notification of the user, expired ones included."""

        by_category = await self._store.count_by_category(user_id)
        by_status = await self._store.count_by_status(user_id)
        total = sum(by_status.values())
        unread = by_status.get(NotificationStatus.UNREAD, 0)
        read = total - unread
        percentage = round(read / total * 100, 2) if total else 0.0
        return NotificationStats(
            total=total,
            unread=unread,
            read=read,
            read_percentage=percentage,
            by_category=by_category,
        )

    def page_request(self, page: int = 1, size: int | None = None) -> PageRequest:
        """Build a page request using the configured default size."""

        return self._normalize_page(PageRequest(page=page, size=size or self._page_size))

    @property
    def retention_days(self) -> int:
        return self._retention_days

    def _normalize_page(self, page: PageRequest | None) -> PageRequest:
        if page is None:
            return PageRequest(page=1, size=self._page_size)
        if page.page < 1 or page.size < 1:
            raise NotificationValidationError("page and size must be positive")
        return PageRequest(page=page.page, size=min(page.size, self._max_page_size))

    # Lifecycle ----------------------------------------------------------------

    async def mark_read(self, notification_id: int, user_id: int) -> Notification:
        """Mark the notification read; repeated calls return the stored record."""

        current = await self._get_owned(notification_id, user_id)
        if current.status is not NotificationStatus.UNREAD:
            return current

        try:
            updated = await self._store.update(
                notification_id,
                {"status": NotificationStatus.READ, "read_at": self._clock()},
                expected_status=(NotificationStatus.UNREAD,),
            )
        except NotificationPreconditionFailed:
            # Someone else moved it out of UNREAD first.
            return await self._store.get(notification_id)

        await self._publish_updated(updated)
        return updated

    async def mark_all_read(self, user_id: int) -> int:
        count = await self._store.mark_all_read(user_id, read_at=self._clock())
        if count:
            await self._publish(user_id, "notifications.read_all", {"count": count})
        return count

    async def archive(self, notification_id: int, user_id: int) -> Notification:
        """Archive a READ notification; archiving an UNREAD one is rejected."""

        current = await self._get_owned(notification_id, user_id)
        if current.status is NotificationStatus.ARCHIVED:
            return current
        if current.status is NotificationStatus.UNREAD:
            raise NotificationPreconditionFailed(
                f"Notification {notification_id} must be read before it can be archived"
            )

        try:
            updated = await self._store.update(
                notification_id,
                {"status": NotificationStatus.ARCHIVED},
                expected_status=(NotificationStatus.READ,),
            )
        except NotificationPreconditionFailed:
            latest = await self._store.get(notification_id)
            if latest.status is NotificationStatus.ARCHIVED:
                return latest
            raise

        await self._publish_updated(updated)
        return updated

    async def archive_all_read(self, user_id: int) -> int:
        return await self._store.archive_read(user_id, archived_at=self._clock())

    async def delete(self, notification_id: int, user_id: int) -> None:
        await self._get_owned(notification_id, user_id)
        if not await self._store.delete(notification_id):
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
        await self._publish(user_id, "notification.deleted", {"id": notification_id})

    async def delete_all(self, user_id: int) -> int:
        return await self._store.delete_for_user(user_id)

    # Maintenance --------------------------------------------------------------

    async def cleanup_expired(self, retention_days: int | None = None) -> int:
        """Delete READ and ARCHIVED notifications older than the retention window."""

        days = self._retention_days if retention_days is None else retention_days
        if days < 1:
            raise NotificationValidationError("retention_days must be at least 1")
        cutoff = self._clock() - timedelta(days=days)
        deleted = await self._store.delete_settled_before(cutoff)
        logger.info("Removed %s notifications settled before %s", deleted, cutoff.isoformat())
        return deleted

    async def purge_expired(self) -> int:
        """Delete every notification whose ``expires_at`` has passed."""

        now = self._clock()
        deleted = await self._store.delete_expired_before(now)
        logger.info("Removed %s notifications expired at %s", deleted, now.isoformat())
        return deleted

    async def wait_for_deliveries(self, timeout: float | None = None) -> None:
        await self._scheduler.drain(timeout)

    # Helpers ------------------------------------------------------------------

    async def _get_owned(self, notification_id: int, user_id: int) -> Notification:
        notification = await self._store.get(notification_id)
        if notification.recipient_id != user_id:
            raise NotificationAccessDenied(
                f"Notification {notification_id} does not belong to user {user_id}"
            )
        return notification

    async def _publish_updated(self, notification: Notification) -> None:
        await self._publish(
            notification.recipient_id,
            "notification.updated",
            {
                "id": notification.id,
                "status": notification.status.value,
                "read_at": notification.read_at.isoformat() if notification.read_at else None,
            },
        )

    async def _publish(self, user_id: int, event_type: str, payload: dict[str, Any]) -> None:
        if self._publisher is None:
            return
        await self._publisher.publish(user_id, event_type=event_type, payload=payload)


__all__ = ["BroadcastResult", "NotificationService", "NotificationStats"]
