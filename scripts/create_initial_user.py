"""Create the first account of the service desk (usually an administrator)."""

from __future__ import annotations

import argparse
from getpass import getpass

from sqlalchemy.exc import SQLAlchemyError

from servicedesk.application.use_cases.users import ALLOWED_ROLES, create_user
from servicedesk.infrastructure.database import SessionLocal, initialize_database


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--email", default="admin@example.com")
    parser.add_argument("--role", default="admin", choices=ALLOWED_ROLES)
    parser.add_argument(
        "--phone",
        default=None,
        help="E.164 number used by the SMS channel, e.g. +15551234567",
    )
    parser.add_argument("--push-token", default=None, help="Device token for push delivery")
    parser.add_argument(
        "--password",
        default=None,
        help="Prompted for when omitted",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    password = args.password or getpass("Password for the new user: ")
    if not password:
        raise SystemExit("A password is required.")

    initialize_database()
    with SessionLocal() as session:
        try:
            user = create_user(
                session,
                name=args.name,
                email=args.email,
                password=password,
                role_alias=args.role,
                phone_number=args.phone,
                push_token=args.push_token,
            )
        except (ValueError, SQLAlchemyError) as exc:
            session.rollback()
            raise SystemExit(f"Could not create the user: {exc}") from exc

    print(f"Created {user.role.alias} #{user.id}: {user.name} <{user.email}>")


if __name__ == "__main__":
    main()
