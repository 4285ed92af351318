"""Errors raised by the notification core."""


class NotificationError(Exception):
    """Base class for notification failures surfaced to callers."""


class NotificationValidationError(NotificationError, ValueError):
    """The request is malformed or violates a creation rule."""


class NotificationNotFoundError(NotificationError, LookupError):
    """The referenced notification or user does not exist."""


class NotificationAccessDenied(NotificationError, PermissionError):
    """The acting user does not own the notification."""


class NotificationPreconditionFailed(NotificationError):
    """The requested lifecycle transition is not allowed from the current state."""


class ChannelDeliveryError(Exception):
    """A channel could not hand the notification to its transport.

    Raised by channel senders only; the orchestrator records it on the
    notification instead of propagating it.
    """

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


__all__ = [
    "NotificationError",
    "NotificationValidationError",
    "NotificationNotFoundError",
    "NotificationAccessDenied",
    "NotificationPreconditionFailed",
    "ChannelDeliveryError",
]
