"""Translate notification errors into HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from servicedesk.domain.errors import (
    NotificationAccessDenied,
    NotificationError,
    NotificationNotFoundError,
    NotificationPreconditionFailed,
    NotificationValidationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[NotificationError], int], ...] = (
    (NotificationValidationError, status.HTTP_400_BAD_REQUEST),
    (NotificationNotFoundError, status.HTTP_404_NOT_FOUND),
    (NotificationAccessDenied, status.HTTP_403_FORBIDDEN),
    (NotificationPreconditionFailed, status.HTTP_409_CONFLICT),
)


def status_for(exc: NotificationError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def notification_error_handler(request: Request, exc: NotificationError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotificationError, notification_error_handler)
