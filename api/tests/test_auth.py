"""Test authentication functionality."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt

from blogapp.auth import JWT_ALGORITHM, JWT_SECRET_KEY, create_access_token
from blogapp.models import User


def test_create_access_token():
    """Test JWT access token creation."""
    token = create_access_token(42)
    payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    assert payload["user_id"] == "42"
    assert payload["type"] == "access"


def test_register_returns_token_and_user(client):
    suffix = uuid.uuid4().hex[:8]
    response = client.post(
        "/api/auth/register",
        json={
            "username": f"writer_{suffix}",
            "email": f"Writer_{suffix}@Example.com",
            "password": "secret123",
            "firstName": "Ada",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "User registered successfully"
    assert data["token"]
    assert data["user"]["username"] == f"writer_{suffix}"
    assert data["user"]["email"] == f"writer_{suffix}@example.com"
    assert data["user"]["firstName"] == "Ada"
    assert data["user"]["role"] == "user"
    assert "passwordHash" not in data["user"]


def test_register_duplicate_username_or_email(client, make_user):
    user = make_user()

    response = client.post(
        "/api/auth/register",
        json={"username": user["username"], "email": "other@example.com", "password": "secret123"},
    )
    assert response.status_code == 400

    response = client.post(
        "/api/auth/register",
        json={"username": "someone_else", "email": user["email"], "password": "secret123"},
    )
    assert response.status_code == 400


def test_register_validation_problem(client):
    response = client.post(
        "/api/auth/register",
        json={"username": "a!", "email": "not-an-email", "password": "123"},
    )
    assert response.status_code == 400
    problem = response.json()
    assert problem["status"] == 400
    assert problem["title"] == "Validation failed"
    assert {"username", "email", "password"} <= set(problem["errors"])


def test_login_success_updates_last_login(client, make_user, db):
    user = make_user()

    response = client.post("/api/auth/login", json={"email": user["email"], "password": user["password"]})
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Login successful"
    assert data["token"]
    assert data["user"]["lastLogin"] is not None

    stored = db.query(User).filter(User.id == user["id"]).one()
    assert stored.last_login is not None


def test_login_bad_credentials(client, make_user):
    user = make_user()

    response = client.post("/api/auth/login", json={"email": user["email"], "password": "wrong-password"})
    assert response.status_code == 401

    response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert response.status_code == 401


def test_login_inactive_account(client, make_user, admin):
    user = make_user()
    response = client.put(f"/api/users/{user['id']}", json={"isActive": False}, headers=admin["headers"])
    assert response.status_code == 200

    response = client.post("/api/auth/login", json={"email": user["email"], "password": user["password"]})
    assert response.status_code == 401

    # Existing tokens stop working too
    response = client.get("/api/auth/me", headers=user["headers"])
    assert response.status_code == 401


def test_me(client, make_user):
    user = make_user()
    response = client.get("/api/auth/me", headers=user["headers"])
    assert response.status_code == 200
    data = response.json()["user"]
    assert data["id"] == user["id"]
    assert data["email"] == user["email"]
    assert data["followerCount"] == 0


def test_me_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    expired = jwt.encode(
        {
            "user_id": "1",
            "type": "access",
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        },
        JWT_SECRET_KEY,
        algorithm=JWT_ALGORITHM,
    )
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_change_password(client, make_user):
    user = make_user()

    response = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "wrong-password", "newPassword": "newsecret123"},
        headers=user["headers"],
    )
    assert response.status_code == 400

    response = client.post(
        "/api/auth/change-password",
        json={"currentPassword": user["password"], "newPassword": "newsecret123"},
        headers=user["headers"],
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Password changed successfully"

    old_login = client.post("/api/auth/login", json={"email": user["email"], "password": user["password"]})
    assert old_login.status_code == 401
    new_login = client.post("/api/auth/login", json={"email": user["email"], "password": "newsecret123"})
    assert new_login.status_code == 200


def test_change_password_requires_auth(client):
    response = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "secret123", "newPassword": "newsecret123"},
    )
    assert response.status_code == 401
