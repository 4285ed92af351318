"""Expand a notification audience into concrete recipient ids."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from servicedesk.application.ports import UserDirectory
from servicedesk.domain.entities import Audience, AudienceKind
from servicedesk.domain.errors import NotificationValidationError

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Recipients found for an audience and the ids that could not be used."""

    recipient_ids: list[int] = field(default_factory=list)
    unresolved: list[int] = field(default_factory=list)


class RecipientResolver:
    """Turn an :class:`Audience` into a deduplicated list of active user ids."""

    def __init__(self, directory: UserDirectory) -> None:
        self._directory = directory

    async def resolve(self, audience: Audience) -> Resolution:
        if audience.kind in (AudienceKind.USER, AudienceKind.USERS):
            return await self._resolve_explicit(audience.user_ids)

        if audience.kind is AudienceKind.ROLE:
            role = (audience.role or "").strip()
            if not role:
                raise NotificationValidationError("A role is required for role broadcasts")
            ids = await self._directory.list_active_ids_by_role(role)
        else:
            ids = await self._directory.list_active_ids()

        resolution = Resolution(recipient_ids=_dedupe(ids))
        logger.debug(
            "Resolved audience %s to %s recipients", audience.kind.value, len(resolution.recipient_ids)
        )
        return resolution

    async def _resolve_explicit(self, user_ids) -> Resolution:
        resolution = Resolution()
        for user_id in _dedupe(user_ids):
            try:
                user = await self._directory.get_user(user_id)
            except Exception:
                logger.exception("Could not look up user %s for broadcast", user_id)
                resolution.unresolved.append(user_id)
                continue
            if user is None or not user.can_receive:
                resolution.unresolved.append(user_id)
                continue
            resolution.recipient_ids.append(user_id)
        return resolution


def _dedupe(ids) -> list[int]:
    return list(dict.fromkeys(ids))


__all__ = ["RecipientResolver", "Resolution"]
