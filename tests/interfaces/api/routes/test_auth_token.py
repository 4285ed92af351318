"""Tests for the authentication token endpoint."""

from __future__ import annotations

from fastapi.testclient import TestClient

from servicedesk.infrastructure.database import SessionLocal
from servicedesk.infrastructure.models import UserModel


def test_login_returns_bearer_token(client: TestClient, admin) -> None:
    response = client.post(
        "/auth/token",
        data={"username": admin.email, "password": "StrongPass123"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["token_type"] == "bearer"
    assert payload["role"] == "admin"
    assert bool(payload["access_token"])


def test_login_rejects_wrong_password(client: TestClient, admin) -> None:
    response = client.post(
        "/auth/token",
        data={"username": admin.email, "password": "wrong-password"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 401


def test_requests_without_token_are_rejected(client: TestClient) -> None:
    assert client.get("/notifications/").status_code == 401


def test_deactivation_invalidates_existing_token(client: TestClient, member) -> None:
    assert client.get("/notifications/", headers=member.headers).status_code == 200

    with SessionLocal() as session:
        session.query(UserModel).filter(UserModel.id == member.id).update({"is_active": False})
        session.commit()

    response = client.get("/notifications/", headers=member.headers)
    assert response.status_code == 401


def test_me_returns_contact_profile(client: TestClient, member) -> None:
    response = client.get("/auth/me", headers=member.headers)

    assert response.status_code == 200
    assert response.json() == {
        "id": member.id,
        "name": "Member",
        "email": "member@example.com",
        "role": "user",
        "phone_number": None,
        "has_push_token": False,
    }
