"""Use cases for managing users."""

from .authenticate_user import AuthenticationResult, AuthenticationStatus, authenticate_user
from .create_user import ALLOWED_ROLES, create_user

__all__ = [
    "ALLOWED_ROLES",
    "AuthenticationResult",
    "AuthenticationStatus",
    "authenticate_user",
    "create_user",
]
