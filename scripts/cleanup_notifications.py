"""Remove notifications past their retention window or expiry date."""

from __future__ import annotations

import argparse
import logging
from functools import partial

import anyio

from servicedesk.config import get_settings
from servicedesk.infrastructure.database import SessionLocal, initialize_database
from servicedesk.infrastructure.notifications import (
    PresenceRegistry,
    build_notification_service,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--retention-days",
        type=int,
        default=None,
        help="Age in days after which read and archived notifications are removed "
        "(default: NOTIFICATION_RETENTION_DAYS)",
    )
    parser.add_argument(
        "--skip-expired",
        action="store_true",
        help="Only apply the retention window; keep unread notifications past expiry.",
    )
    return parser.parse_args()


async def run(retention_days: int | None, *, purge_expired: bool) -> tuple[int, int]:
    service = build_notification_service(get_settings(), SessionLocal, PresenceRegistry())
    settled = await service.cleanup_expired(retention_days)
    expired = await service.purge_expired() if purge_expired else 0
    return settled, expired


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args()
    if args.retention_days is not None and args.retention_days < 1:
        raise SystemExit("--retention-days must be at least 1")

    initialize_database()
    settled, expired = anyio.run(
        partial(run, args.retention_days, purge_expired=not args.skip_expired)
    )
    print(f"Removed {settled} settled and {expired} expired notifications.")


if __name__ == "__main__":
    main()
