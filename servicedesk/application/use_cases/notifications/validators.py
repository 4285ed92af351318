"""Validation helpers for notification use cases."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta

from servicedesk.domain.entities import (
    DeliveryChannel,
    NotificationAction,
    NotificationDraft,
    RelatedEntity,
)
from servicedesk.domain.errors import NotificationValidationError
from servicedesk.utils import ensure_app_timezone

TITLE_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 500
ACTION_LABEL_MAX_LENGTH = 50


def _require_text(value: str | None, *, field: str, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise NotificationValidationError(f"{field} is required")
    if len(cleaned) > max_length:
        raise NotificationValidationError(
            f"{field} must be at most {max_length} characters"
        )
    return cleaned


def normalize_channels(channels: Iterable[DeliveryChannel]) -> tuple[DeliveryChannel, ...]:
    """Return the requested channels without duplicates, preserving order."""

    unique: list[DeliveryChannel] = []
    for channel in channels:
        try:
            channel = DeliveryChannel(channel)
        except ValueError as exc:
            raise NotificationValidationError(f"Unknown delivery channel: {channel}") from exc
        if channel not in unique:
            unique.append(channel)
    if not unique:
        raise NotificationValidationError("At least one delivery channel is required")
    return tuple(unique)


def build_related_entity(draft: NotificationDraft) -> RelatedEntity | None:
    """Return the related entity, requiring both halves of the pair or neither."""

    kind = draft.related_entity_kind
    entity_id = draft.related_entity_id
    if entity_id is not None:
        entity_id = str(entity_id).strip() or None

    if kind is None and entity_id is None:
        return None
    if kind is None or entity_id is None:
        raise NotificationValidationError(
            "related_entity_kind and related_entity_id must be provided together"
        )
    return RelatedEntity(kind=kind, entity_id=entity_id)


def _validate_actions(actions: Iterable[NotificationAction]) -> list[NotificationAction]:
    validated: list[NotificationAction] = []
    for action in actions:
        label = _require_text(action.label, field="Action label", max_length=ACTION_LABEL_MAX_LENGTH)
        url = (action.url or "").strip()
        if not url:
            raise NotificationValidationError("Action url is required")
        validated.append(replace(action, label=label, url=url))
    return validated


def resolve_expiry(
    expires_at: datetime | None, *, now: datetime, ttl_days: int
) -> datetime:
    """Return the expiry for a new notification; explicit values must be in the future."""

    if expires_at is None:
        return now + timedelta(days=ttl_days)
    expires_at = ensure_app_timezone(expires_at)
    if expires_at <= now:
        raise NotificationValidationError("expires_at must be in the future")
    return expires_at


def validate_draft(draft: NotificationDraft) -> NotificationDraft:
    """Return a cleaned copy of ``draft`` or raise ``NotificationValidationError``."""

    build_related_entity(draft)
    link = draft.link.strip() if draft.link else None
    return replace(
        draft,
        title=_require_text(draft.title, field="Title", max_length=TITLE_MAX_LENGTH),
        message=_require_text(draft.message, field="Message", max_length=MESSAGE_MAX_LENGTH),
        channels=normalize_channels(draft.channels),
        link=link or None,
        actions=_validate_actions(draft.actions),
        metadata=dict(draft.metadata or {}),
    )


__all__ = [
    "MESSAGE_MAX_LENGTH",
    "TITLE_MAX_LENGTH",
    "build_related_entity",
    "normalize_channels",
    "resolve_expiry",
    "validate_draft",
]
