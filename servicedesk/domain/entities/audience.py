"""Domain entity describing who a notification request targets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class AudienceKind(str, Enum):
    USER = "user"
    USERS = "users"
    ROLE = "role"
    ALL = "all"


@dataclass(frozen=True)
class Audience:
    """Target of a send request before it is expanded into recipient ids."""

    kind: AudienceKind
    user_ids: tuple[int, ...] = ()
    role: str | None = None

    @classmethod
    def for_user(cls, user_id: int) -> "Audience":
        return cls(kind=AudienceKind.USER, user_ids=(user_id,))

    @classmethod
    def for_users(cls, user_ids: Iterable[int]) -> "Audience":
        return cls(kind=AudienceKind.USERS, user_ids=tuple(user_ids))

    @classmethod
    def for_role(cls, role: str) -> "Audience":
        return cls(kind=AudienceKind.ROLE, role=role)

    @classmethod
    def everyone(cls) -> "Audience":
        return cls(kind=AudienceKind.ALL)


__all__ = ["Audience", "AudienceKind"]
