"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from servicedesk.domain.entities import (
    ActionMethod,
    DeliveryChannel,
    DeliveryStatus,
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationFilters,
    NotificationPriority,
    NotificationStatus,
    PageRequest,
    RelatedEntity,
    RelatedEntityKind,
)
from servicedesk.domain.errors import (
    NotificationNotFoundError,
    NotificationPreconditionFailed,
)
from servicedesk.infrastructure.models import NotificationModel
from servicedesk.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

_SETTLED_STATUSES = (NotificationStatus.READ.value, NotificationStatus.ARCHIVED.value)
_UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "delivery_status",
        "read_at",
        "metadata",
        "updated_at",
    }
)


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: int,
        filters: NotificationFilters,
        page: PageRequest,
        *,
        now: datetime,
    ) -> tuple[list[Notification], int]:
        query = self._visible_query(user_id, include_expired=filters.include_expired, now=now)
        if filters.status is not None:
            query = query.filter(NotificationModel.status == filters.status.value)
        if filters.category is not None:
            query = query.filter(NotificationModel.category == filters.category.value)
        if filters.priority is not None:
            query = query.filter(NotificationModel.priority == filters.priority.value)

        total = query.count()
        models = (
            query.order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            )
            .offset(page.offset)
            .limit(page.size)
            .all()
        )
        return [self._to_entity(model) for model in models], total

    def count_unread(self, user_id: int, *, now: datetime) -> int:
        return (
            self._visible_query(user_id, include_expired=False, now=now)
            .filter(NotificationModel.status == NotificationStatus.UNREAD.value)
            .count()
        )

    def count_by_category(self, user_id: int) -> dict[NotificationCategory, int]:
        rows = (
            self.session.query(NotificationModel.category, func.count(NotificationModel.id))
            .filter(NotificationModel.recipient_id == user_id)
            .group_by(NotificationModel.category)
            .all()
        )
        return {NotificationCategory(category): count for category, count in rows}

    def count_by_status(self, user_id: int) -> dict[NotificationStatus, int]:
        rows = (
            self.session.query(NotificationModel.status, func.count(NotificationModel.id))
            .filter(NotificationModel.recipient_id == user_id)
            .group_by(NotificationModel.status)
            .all()
        )
        return {NotificationStatus(status): count for status, count in rows}

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(
        self,
        notification_id: int,
        changes: Mapping[str, Any],
        *,
        expected_status: Iterable[NotificationStatus] | None = None,
    ) -> Notification:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unsupported notification fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        model = self.session.get(NotificationModel, notification_id, with_for_update=True)
        if model is None:
            self.session.rollback()
            raise NotificationNotFoundError(f"Notification {notification_id} not found")

        if expected_status is not None:
            allowed = {NotificationStatus(status).value for status in expected_status}
            if model.status not in allowed:
                current = model.status
                self.session.rollback()
                msg = f"Notification {notification_id} is {current}"
                raise NotificationPreconditionFailed(msg)

        for name, value in changes.items():
            self._apply_change(model, name, value)
        if "updated_at" not in changes:
            model.updated_at = ensure_app_naive_datetime(now_in_app_timezone())
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_all_read(self, user_id: int, *, read_at: datetime) -> int:
        stamp = ensure_app_naive_datetime(read_at)
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == user_id,
                NotificationModel.status == NotificationStatus.UNREAD.value,
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.READ.value,
                    NotificationModel.read_at: stamp,
                    NotificationModel.updated_at: stamp,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def archive_read(self, user_id: int, *, archived_at: datetime) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == user_id,
                NotificationModel.status == NotificationStatus.READ.value,
            )
            .update(
                {
                    NotificationModel.status: NotificationStatus.ARCHIVED.value,
                    NotificationModel.updated_at: ensure_app_naive_datetime(archived_at),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def delete(self, notification_id: int) -> bool:
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    def delete_for_user(self, user_id: int) -> int:
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.recipient_id == user_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def delete_expired_before(self, cutoff: datetime) -> int:
        deleted = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.expires_at <= ensure_app_naive_datetime(cutoff))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def delete_settled_before(self, cutoff: datetime) -> int:
        deleted = (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.status.in_(_SETTLED_STATUSES),
                NotificationModel.created_at < ensure_app_naive_datetime(cutoff),
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def _visible_query(
        self, user_id: int, *, include_expired: bool, now: datetime
    ) -> Query:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.recipient_id == user_id
        )
        if not include_expired:
            query = query.filter(
                or_(
                    NotificationModel.expires_at.is_(None),
                    NotificationModel.expires_at > ensure_app_naive_datetime(now),
                )
            )
        return query

    @staticmethod
    def _apply_change(model: NotificationModel, name: str, value: Any) -> None:
        if name in {"status", "delivery_status"}:
            setattr(model, name, value.value if hasattr(value, "value") else value)
        elif name == "metadata":
            model.extra = dict(value or {})
        else:
            setattr(model, name, ensure_app_naive_datetime(value))

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        created_at = notification.created_at or now_in_app_timezone()
        model.recipient_id = notification.recipient_id
        model.sender_id = notification.sender_id
        model.title = notification.title
        model.message = notification.message
        model.category = notification.category.value
        model.priority = notification.priority.value
        model.status = notification.status.value
        model.delivery_status = notification.delivery_status.value
        model.channels = [channel.value for channel in notification.channels]
        related = notification.related_entity
        model.related_entity_kind = related.kind.value if related else None
        model.related_entity_id = related.entity_id if related else None
        model.link = notification.link
        model.actions = [
            {
                "label": action.label,
                "url": action.url,
                "method": action.method.value,
                "data": action.data,
            }
            for action in notification.actions
        ]
        model.extra = dict(notification.metadata or {})
        model.created_at = ensure_app_naive_datetime(created_at)
        model.updated_at = ensure_app_naive_datetime(notification.updated_at)
        model.read_at = ensure_app_naive_datetime(notification.read_at)
        model.expires_at = ensure_app_naive_datetime(notification.expires_at)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        related = None
        if model.related_entity_kind and model.related_entity_id:
            related = RelatedEntity(
                kind=RelatedEntityKind(model.related_entity_kind),
                entity_id=model.related_entity_id,
            )
        return Notification(
            id=model.id,
            recipient_id=model.recipient_id,
            sender_id=model.sender_id,
            title=model.title,
            message=model.message,
            category=NotificationCategory(model.category),
            priority=NotificationPriority(model.priority),
            status=NotificationStatus(model.status),
            delivery_status=DeliveryStatus(model.delivery_status),
            channels=tuple(DeliveryChannel(channel) for channel in model.channels or ()),
            related_entity=related,
            link=model.link,
            actions=[
                NotificationAction(
                    label=action["label"],
                    url=action["url"],
                    method=ActionMethod(action.get("method") or ActionMethod.GET.value),
                    data=action.get("data"),
                )
                for action in model.actions or ()
            ],
            metadata=dict(model.extra or {}),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
            read_at=ensure_app_timezone(model.read_at),
            expires_at=ensure_app_timezone(model.expires_at),
        )


__all__ = ["NotificationRepository"]
