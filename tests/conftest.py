"""Shared fixtures for the notification engine tests."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

_TEST_DIR = Path(tempfile.mkdtemp(prefix="servicedesk-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'api.db'}"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.pop("SENDGRID_API_KEY", None)
os.environ.pop("SENDGRID_SENDER", None)

import pytest

from servicedesk.config import get_settings
from servicedesk.domain.entities import User
from servicedesk.infrastructure.database import (
    Base,
    build_engine,
    build_session_factory,
)
from servicedesk.infrastructure.notifications import (
    PresenceRegistry,
    build_notification_service,
)
from servicedesk.infrastructure.repositories import RoleRepository, UserRepository
from servicedesk.infrastructure.stores import SqlNotificationStore, SqlUserDirectory
from servicedesk.utils import now_in_app_timezone


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeClock:
    """Controllable replacement for ``now_in_app_timezone``."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or now_in_app_timezone().replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingTransport:
    """Connection transport that records payloads instead of using sockets."""

    def __init__(self) -> None:
        self.sent: list[tuple[Any, dict[str, Any]]] = []
        self.fail = False

    async def send_to_handle(self, handle: Any, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.sent.append((handle, payload))

    def payloads(self, event_type: str | None = None) -> list[dict[str, Any]]:
        return [
            payload
            for _, payload in self.sent
            if event_type is None or payload["type"] == event_type
        ]


class RecordingEmailSender:
    """Stand-in for ``send_email`` that records calls."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls: list[tuple[str, str, str]] = []

    def __call__(self, subject: str, html_content: str, recipient: str) -> bool:
        self.calls.append((subject, html_content, recipient))
        return self.result


@dataclass
class SeededUsers:
    admin: User
    tech_one: User
    tech_two: User
    inactive_tech: User
    alice: User
    bob: User


def make_user(
    session_factory,
    *,
    name: str,
    role: str,
    email: str | None = None,
    is_active: bool = True,
    phone_number: str | None = None,
    push_token: str | None = None,
    password: str = "not-a-real-hash",
) -> User:
    session = session_factory()
    try:
        role_entity = RoleRepository(session).get_or_create(role)
        return UserRepository(session).create(
            User(
                id=None,
                role=role_entity,
                name=name,
                email=email,
                password=password,
                is_active=is_active,
                phone_number=phone_number,
                push_token=push_token,
                created_at=now_in_app_timezone(),
            )
        )
    finally:
        session.close()


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def users(session_factory) -> SeededUsers:
    return SeededUsers(
        admin=make_user(session_factory, name="Admin", role="admin", email="admin@example.com"),
        tech_one=make_user(
            session_factory, name="Tech One", role="technician", email="tech1@example.com"
        ),
        tech_two=make_user(
            session_factory, name="Tech Two", role="technician", email="tech2@example.com"
        ),
        inactive_tech=make_user(
            session_factory,
            name="Former Tech",
            role="technician",
            email="former@example.com",
            is_active=False,
        ),
        alice=make_user(session_factory, name="Alice", role="user"),
        bob=make_user(
            session_factory,
            name="Bob",
            role="user",
            email="bob@example.com",
            phone_number="+15551234567",
        ),
    )


@pytest.fixture
def store(session_factory) -> SqlNotificationStore:
    return SqlNotificationStore(session_factory)


@pytest.fixture
def directory(session_factory) -> SqlUserDirectory:
    return SqlUserDirectory(session_factory)


@pytest.fixture
def presence() -> PresenceRegistry:
    return PresenceRegistry()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(session_factory, presence, transport, email_sender, clock):
    return build_notification_service(
        get_settings(),
        session_factory,
        presence,
        transport=transport,
        email_sender=email_sender,
        clock=clock,
    )
