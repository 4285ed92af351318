"""Timezone helpers shared by the domain and persistence layers.

Timestamps are aware datetimes in the configured ``APP_TIMEZONE`` inside the
application and naive local datetimes in the database.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from servicedesk.config import get_settings

logger = logging.getLogger(__name__)

_ELAPSED_UNITS: Final[tuple[tuple[str, int], ...]] = (
    ("minute", 60),
    ("hour", 60),
    ("day", 24),
    ("month", 30),
    ("year", 12),
)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured timezone, or UTC when the name is unknown."""

    name = (get_settings().app_timezone or "").strip()
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown APP_TIMEZONE %r; falling back to UTC", name)
        return timezone.utc


def now_in_app_timezone() -> datetime:
    return datetime.now(tz=get_app_timezone())


def now_in_app_naive_datetime() -> datetime:
    """Column default for ``created_at``."""

    return now_in_app_timezone().replace(tzinfo=None)


def ensure_app_timezone(value: datetime | None) -> datetime | None:
    """Attach or convert ``value`` to the app timezone; naive values are local."""

    if value is None:
        return None
    tz = get_app_timezone()
    return value.replace(tzinfo=tz) if value.tzinfo is None else value.astimezone(tz)


def ensure_app_naive_datetime(value: datetime | None) -> datetime | None:
    localized = ensure_app_timezone(value)
    return localized.replace(tzinfo=None) if localized is not None else None


def describe_elapsed(start: datetime, now: datetime) -> str:
    """Return a short human description such as ``"5 minutes ago"``."""

    amount = max(int((ensure_app_timezone(now) - ensure_app_timezone(start)).total_seconds()), 0)
    unit = "second"
    for next_unit, factor in _ELAPSED_UNITS:
        if amount < factor:
            break
        amount //= factor
        unit = next_unit
    return f"{amount} {unit}{'' if amount == 1 else 's'} ago"
