"""Domain entity representing a user."""

from dataclasses import dataclass
from datetime import datetime


from .role import Role


@dataclass
class User:
    """Core attributes describing an application user.

    ``email``, ``phone_number`` and ``push_token`` double as the contact data
    consumed by the delivery channels; any of them may be missing.
    """

    id: int | None
    role: Role
    name: str
    email: str | None
    password: str
    is_active: bool
    phone_number: str | None = None
    push_token: str | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None
    deleted: bool = False

    def has_role(self, alias: str) -> bool:
        """Return ``True`` when the user's role alias matches ``alias``."""

        return self.role.matches(alias)

    def is_admin(self) -> bool:
        """Return ``True`` when the user is an administrator."""

        return self.has_role("admin")

    @property
    def can_receive(self) -> bool:
        return self.is_active and not self.deleted


__all__ = ["User"]
