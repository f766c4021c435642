from __future__ import annotations

import os
import tempfile
import uuid
from typing import Callable, Generator

# Configure a throwaway database before the app modules read the environment
_DB_DIR = tempfile.mkdtemp(prefix="blogapp-tests-")
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", f"sqlite:///{_DB_DIR}/test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ["BLOG_ADMIN_USERNAME"] = "admin"
os.environ["BLOG_ADMIN_EMAIL"] = "admin@example.com"
os.environ["BLOG_ADMIN_PASSWORD"] = "adminpass123"

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from blogapp.db import SessionLocal
from blogapp.main import app, run_startup_tasks

load_dotenv()

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"
DEFAULT_PASSWORD = "secret123"


@pytest.fixture(scope="session", autouse=True)
def bootstrap() -> None:
    run_startup_tasks()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user(client: TestClient) -> Callable[..., dict]:
    """
    Register a fresh user through the API.

    Returns a dict with the user's id, username, email, password, token and
    ready-made Authorization headers.
    """

    def _make_user(**overrides) -> dict:
        suffix = uuid.uuid4().hex[:10]
        payload = {
            "username": f"user_{suffix}",
            "email": f"user_{suffix}@example.com",
            "password": DEFAULT_PASSWORD,
        }
        payload.update(overrides)
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()
        return {
            "id": data["user"]["id"],
            "username": payload["username"],
            "email": payload["email"],
            "password": payload["password"],
            "token": data["token"],
            "headers": auth_headers(data["token"]),
        }

    return _make_user


@pytest.fixture()
def admin(client: TestClient) -> dict:
    """The seeded admin account, logged in."""
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    data = response.json()
    return {
        "id": data["user"]["id"],
        "token": data["token"],
        "headers": auth_headers(data["token"]),
    }


@pytest.fixture()
def make_blog(client: TestClient) -> Callable[..., dict]:
    """Create a blog for ``author``; published and public unless overridden."""

    def _make_blog(author: dict, **overrides) -> dict:
        payload = {
            "title": f"Post {uuid.uuid4().hex[:8]}",
            "content": "Some words about something interesting.",
            "category": "Technology",
            "status": "published",
            "isPublic": True,
        }
        payload.update(overrides)
        response = client.post("/api/blogs", json=payload, headers=author["headers"])
        assert response.status_code == 201, response.text
        return response.json()["blog"]

    return _make_blog
