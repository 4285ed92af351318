"""Aggregate application use cases."""

from .notifications import NotificationService, RecipientResolver
from .users import authenticate_user, create_user

__all__ = [
    "NotificationService",
    "RecipientResolver",
    "authenticate_user",
    "create_user",
]
