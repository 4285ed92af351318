"""Check login credentials for the token endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session

from servicedesk.domain.entities import User
from servicedesk.infrastructure.repositories import UserRepository
from servicedesk.infrastructure.security import verify_password
from servicedesk.utils import now_in_app_timezone


class AuthenticationStatus(str, Enum):
    SUCCESS = "success"
    INVALID_CREDENTIALS = "invalid_credentials"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class AuthenticationResult:
    status: AuthenticationStatus
    user: User | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is AuthenticationStatus.SUCCESS


def authenticate_user(session: Session, email: str, password: str) -> AuthenticationResult:
    """Verify ``password`` for the account registered under ``email``.

    Unknown emails and wrong passwords are reported the same way. A successful
    login is stamped on the account.
    """

    repository = UserRepository(session)
    user = repository.get_by_email(email.strip().lower())
    if user is None or not verify_password(password, user.password):
        return AuthenticationResult(AuthenticationStatus.INVALID_CREDENTIALS)
    if not user.is_active:
        return AuthenticationResult(AuthenticationStatus.INACTIVE, user)

    repository.record_login(user.id, now_in_app_timezone())
    return AuthenticationResult(AuthenticationStatus.SUCCESS, user)


__all__ = ["AuthenticationResult", "AuthenticationStatus", "authenticate_user"]
