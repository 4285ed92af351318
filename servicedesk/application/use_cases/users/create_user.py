"""Use case for creating users."""

from sqlalchemy.orm import Session

from servicedesk.domain.entities import User
from servicedesk.infrastructure.repositories import RoleRepository, UserRepository
from servicedesk.infrastructure.security import get_password_hash
from servicedesk.utils import now_in_app_timezone

ALLOWED_ROLES = ("admin", "technician", "user")


def create_user(
    session: Session,
    *,
    name: str,
    email: str | None,
    password: str,
    role_alias: str = "user",
    phone_number: str | None = None,
    push_token: str | None = None,
) -> User:
    """Create an active user; emails are stored lower-case and must be unique."""

    email = email.strip().lower() if email else None
    repository = UserRepository(session)
    role_repository = RoleRepository(session)

    if email and repository.get_by_email(email):
        raise ValueError("Email address is already registered")

    alias = role_alias.strip().lower()
    if alias not in ALLOWED_ROLES:
        raise ValueError(f"Role not allowed: {role_alias}")
    role = role_repository.get_or_create(alias)

    user = User(
        id=None,
        role=role,
        name=name,
        email=email,
        password=get_password_hash(password),
        is_active=True,
        phone_number=phone_number,
        push_token=push_token,
        created_at=now_in_app_timezone(),
    )
    return repository.create(user)
