"""Domain entity representing a user role."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Role:
    """Role held by a user; ``alias`` is the lower-case key used for targeting."""

    id: int
    name: str
    alias: str

    def matches(self, alias: str) -> bool:
        return self.alias.lower() == alias.strip().lower()


__all__ = ["Role"]
