"""
HTTP tests for the download quota API, running on the in-memory store.
"""

import contextlib
from typing import Iterator
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis
from starlette.testclient import TestClient

from download_quota.server import app


@contextlib.contextmanager
def make_client(
    monkeypatch: pytest.MonkeyPatch,
    mode: str = "strict",
    admin_password: str = "admin-secret",
) -> Iterator[TestClient]:
    """Run the app, lifespan included, on a fresh in-memory store."""
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("QUOTA_MODE", mode)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("ADMIN_PASSWORD", admin_password)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    with make_client(monkeypatch) as test_client:
        yield test_client


@pytest.fixture
def permissive_client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    with make_client(monkeypatch, mode="permissive") as test_client:
        yield test_client


def register(client: TestClient, username: str = "alice", password: str = "pw1") -> None:
    response = client.post(
        "/api/auth/register", json={"username": username, "password": password}
    )
    assert response.status_code == 201


def test_index_lists_endpoints(client: TestClient) -> None:
    """The banner lists the public endpoints."""
    # Act
    response = client.get("/")

    # Assert
    assert response.status_code == 200
    assert "POST /api/quota/increment/:user" in response.json()["endpoints"]


def test_health(client: TestClient) -> None:
    """The health check answers ok."""
    assert client.get("/health").json() == {"status": "ok"}


def test_register_response(client: TestClient) -> None:
    """Registration answers 201 with the registered username."""
    # Act
    response = client.post(
        "/api/auth/register", json={"username": "alice", "password": "pw1"}
    )

    # Assert
    assert response.status_code == 201
    assert response.json() == {
        "success": True,
        "message": "User registered successfully",
        "username": "alice",
    }


def test_register_duplicate_and_missing_fields(client: TestClient) -> None:
    """Duplicates and missing fields answer 400 with success false."""
    # Arrange
    register(client)

    # Act
    duplicate = client.post(
        "/api/auth/register", json={"username": "alice", "password": "x"}
    )
    missing = client.post("/api/auth/register", json={"username": "bob"})

    # Assert
    assert duplicate.status_code == 400
    assert duplicate.json() == {"success": False, "error": "User already exists"}
    assert missing.status_code == 400
    assert missing.json()["success"] is False


def test_register_rejects_slash_in_username(client: TestClient) -> None:
    """Usernames that could not be addressed in a URL path are refused."""
    # Act
    response = client.post(
        "/api/auth/register", json={"username": "team/alice", "password": "pw"}
    )

    # Assert
    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Username cannot contain '/'",
    }


def test_invalid_json_body(client: TestClient) -> None:
    """Malformed JSON is invalid input."""
    # Act
    response = client.post(
        "/api/auth/register",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    # Assert
    assert response.status_code == 400
    assert response.json()["error"] == "Request body must be valid JSON"


def test_login(client: TestClient) -> None:
    """Login returns the username and the quota view."""
    # Arrange
    register(client)

    # Act
    response = client.post(
        "/api/auth/login", json={"username": "alice", "password": "pw1"}
    )

    # Assert
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Login successful",
        "username": "alice",
        "quota": {
            "user": "alice",
            "maxDownloads": 30,
            "usedDownloads": 0,
            "remaining": 30,
            "isBlocked": False,
        },
    }


def test_login_invalid_credentials(client: TestClient) -> None:
    """A wrong password answers 401."""
    # Arrange
    register(client)

    # Act
    response = client.post(
        "/api/auth/login", json={"username": "alice", "password": "nope"}
    )

    # Assert
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "Invalid username or password",
    }


@pytest.mark.parametrize("password", ["yes", "0123", "null", "p#ss"])
def test_seeded_admin_password_is_used_verbatim(
    monkeypatch: pytest.MonkeyPatch, password: str
) -> None:
    """The admin can log in with exactly the configured password string."""
    # Arrange
    with make_client(monkeypatch, admin_password=password) as test_client:
        # Act
        response = test_client.post(
            "/api/auth/login", json={"username": "admin", "password": password}
        )

    # Assert
    assert response.status_code == 200
    assert response.json()["username"] == "admin"


def test_check_user(client: TestClient) -> None:
    """check-user reports existence and never errors for absent users."""
    # Arrange
    register(client)

    # Act
    found = client.post("/api/auth/check-user", json={"username": "alice"}).json()
    missing = client.post("/api/auth/check-user", json={"username": "ghost"})

    # Assert
    assert found["exists"] is True
    assert found["username"] == "alice"
    assert found["quota"]["remaining"] == 30
    assert missing.status_code == 200
    assert missing.json() == {"exists": False}


def test_download_scenario(client: TestClient) -> None:
    """Thirty downloads, a refusal, a lowered limit and a reset."""
    # Arrange
    register(client)
    for _ in range(29):
        assert client.post("/api/quota/increment/alice").json()["allowed"] is True

    # Act
    thirtieth = client.post("/api/quota/increment/alice").json()
    refused = client.post("/api/quota/increment/alice").json()
    limited = client.post("/api/quota/set-limit/alice", json={"maxDownloads": 5})
    reset = client.post("/api/quota/reset/alice").json()

    # Assert
    assert thirtieth["allowed"] is True
    assert thirtieth["message"] == "Download counted"
    assert thirtieth["usedDownloads"] == 30
    assert thirtieth["remaining"] == 0
    assert refused == {
        "allowed": False,
        "message": "Download limit reached",
        "user": "alice",
        "maxDownloads": 30,
        "usedDownloads": 30,
        "remaining": 0,
        "isBlocked": True,
    }
    assert limited.json() == {
        "success": True,
        "message": "Limit updated",
        "user": "alice",
        "maxDownloads": 5,
        "usedDownloads": 30,
        "remaining": 0,
        "isBlocked": True,
    }
    assert reset["success"] is True
    assert reset["message"] == "Quota reset"
    assert reset["usedDownloads"] == 0
    assert reset["remaining"] == 5


@pytest.mark.parametrize("body", [{}, {"maxDownloads": 0}, {"maxDownloads": "many"}])
def test_set_limit_validation(client: TestClient, body: dict) -> None:
    """Missing or invalid limits answer 400 and leave the limit unchanged."""
    # Arrange
    register(client)

    # Act
    response = client.post("/api/quota/set-limit/alice", json=body)

    # Assert
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "maxDownloads must be >= 1"}
    assert client.get("/api/quota/alice").json()["maxDownloads"] == 30


def test_strict_mode_unknown_user(client: TestClient) -> None:
    """Quota endpoints answer 404 "User not found" for unknown users."""
    # Act
    response = client.get("/api/quota/ghost")
    increment = client.post("/api/quota/increment/ghost")
    reset = client.post("/api/quota/reset/ghost")

    # Assert
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}
    assert increment.status_code == 404
    assert reset.json() == {"success": False, "error": "User not found"}


def test_strict_mode_unprovisioned_quota(client: TestClient) -> None:
    """An account without a quota record answers a distinct 404."""
    # Arrange
    register(client)
    store = client.app.state.container.store()  # type: ignore[attr-defined]
    store._quotas.pop("alice")

    # Act
    response = client.get("/api/quota/alice")

    # Assert
    assert response.status_code == 404
    assert response.json() == {"error": "Quota not initialized for user"}


def test_permissive_mode_provisions_quota(permissive_client: TestClient) -> None:
    """Permissive mode answers with a fresh default quota."""
    # Act
    response = permissive_client.get("/api/quota/guest")
    increment = permissive_client.post("/api/quota/increment/visitor")

    # Assert
    assert response.status_code == 200
    assert response.json()["remaining"] == 30
    assert increment.json()["allowed"] is True


def test_admin_users(client: TestClient) -> None:
    """The admin listing pairs each account with its quota, without hashes."""
    # Arrange
    register(client)
    client.post("/api/quota/increment/alice")

    # Act
    users = client.get("/api/admin/users").json()

    # Assert
    by_name = {user["username"]: user for user in users}
    assert set(by_name) == {"admin", "alice"}
    assert by_name["alice"]["quota"]["usedDownloads"] == 1
    assert "createdAt" in by_name["alice"]
    assert all("password_hash" not in user for user in users)


def test_admin_delete_user(client: TestClient) -> None:
    """Deleting a user removes its quota as well."""
    # Arrange
    register(client)

    # Act
    response = client.delete("/api/admin/users/alice")

    # Assert
    assert response.json() == {"success": True, "message": "User deleted"}
    assert client.get("/api/quota/alice").json() == {"error": "User not found"}


def test_admin_cannot_delete_admin(client: TestClient) -> None:
    """Deleting the reserved admin answers 400."""
    # Act
    response = client.delete("/api/admin/users/admin")

    # Assert
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Cannot delete admin user"}


def test_store_failure_returns_500(client: TestClient) -> None:
    """Store failures surface as 500 with a generic message."""
    # Arrange
    store = client.app.state.container.store()  # type: ignore[attr-defined]
    store.get_quota = AsyncMock(side_effect=redis.ConnectionError("down"))
    store.list_accounts = AsyncMock(side_effect=redis.ConnectionError("down"))

    # Act
    quota = client.get("/api/quota/alice")
    users = client.get("/api/admin/users")

    # Assert
    assert quota.status_code == 500
    assert quota.json() == {"error": "Failed to fetch quota"}
    assert users.status_code == 500
    assert users.json() == {"error": "Failed to fetch users"}
