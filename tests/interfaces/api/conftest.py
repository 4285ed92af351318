"""Fixtures for exercising the HTTP and websocket API."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from servicedesk.application.use_cases.users import create_user
from servicedesk.infrastructure.database import (
    Base,
    SessionLocal,
    engine,
    initialize_database,
)
from main import create_app

PASSWORD = "StrongPass123"


@dataclass
class ApiUser:
    id: int
    email: str
    headers: dict[str, str]
    token: str


@pytest.fixture(autouse=True)
def reset_database():
    """Ensure the test database starts from a clean state for each test."""

    Base.metadata.drop_all(bind=engine)
    initialize_database()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(email_sender):
    app = create_app(email_sender=email_sender)
    with TestClient(app) as test_client:
        yield test_client


def register_user(name: str, email: str | None, role: str) -> int:
    with SessionLocal() as session:
        return create_user(
            session, name=name, email=email, password=PASSWORD, role_alias=role
        ).id


def login(client: TestClient, email: str, user_id: int) -> ApiUser:
    response = client.post(
        "/auth/token",
        data={"username": email, "password": PASSWORD},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return ApiUser(
        id=user_id, email=email, headers={"Authorization": f"Bearer {token}"}, token=token
    )


@pytest.fixture
def admin(client) -> ApiUser:
    return login(client, "admin@example.com", register_user("Admin", "admin@example.com", "admin"))


@pytest.fixture
def member(client) -> ApiUser:
    return login(client, "member@example.com", register_user("Member", "member@example.com", "user"))


@pytest.fixture
def other_member(client) -> ApiUser:
    return login(client, "other@example.com", register_user("Other", "other@example.com", "user"))
