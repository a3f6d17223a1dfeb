from __future__ import annotations

import time
from typing import Any

import jwt
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.security import verify_password
from app.services.memory import InMemoryRepository
from conftest import ADMIN_PASSWORD, ADMIN_USERNAME, run

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def test_login_returns_token_usable_for_profile(api_client: TestClient, admin: dict[str, Any]) -> None:
    response = api_client.post(
        "/api/auth/admin/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["admin"] == {"id": admin["id"], "username": ADMIN_USERNAME, "email": "admin@example.edu"}

    profile = api_client.get("/api/auth/profile", headers={"Authorization": f"Bearer {data['token']}"})
    assert profile.status_code == 200
    assert profile.json()["data"]["username"] == ADMIN_USERNAME


def test_login_rejects_wrong_password(api_client: TestClient, admin: dict[str, Any]) -> None:
    response = api_client.post("/api/auth/admin/login", json={"username": ADMIN_USERNAME, "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid credentials"}


def test_login_rejects_unknown_user(api_client: TestClient) -> None:
    response = api_client.post("/api/auth/admin/login", json={"username": "ghost", "password": "whatever"})
    assert response.status_code == 401


def test_profile_requires_token(api_client: TestClient) -> None:
    assert api_client.get("/api/auth/profile").status_code == 401
    assert api_client.get("/api/auth/profile", headers={"Authorization": "Basic abc"}).status_code == 403


def test_expired_token_is_forbidden(api_client: TestClient, admin: dict[str, Any]) -> None:
    settings = get_settings()
    issued_at = int(time.time()) - 7200
    token = jwt.encode(
        {"sub": str(admin["id"]), "username": admin["username"], "type": "access", "iat": issued_at, "exp": issued_at + 60},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    response = api_client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.json()["error"] == "Token expired"


def test_expired_token_on_public_route_is_anonymous(api_client: TestClient, admin: dict[str, Any]) -> None:
    settings = get_settings()
    token = jwt.encode(
        {"sub": str(admin["id"]), "username": admin["username"], "type": "access", "exp": int(time.time()) - 10},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    response = api_client.get("/api/jobs", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


def test_change_password(
    api_client: TestClient,
    admin: dict[str, Any],
    admin_headers: dict[str, str],
    memory_repo: InMemoryRepository,
) -> None:
    wrong = api_client.put(
        "/api/auth/change-password",
        json={"current_password": "incorrect", "new_password": "new-password-1"},
        headers=admin_headers,
    )
    assert wrong.status_code == 400

    response = api_client.put(
        "/api/auth/change-password",
        json={"current_password": ADMIN_PASSWORD, "new_password": "new-password-1"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    stored = run(memory_repo.get_admin_by_id(admin["id"]))
    assert stored is not None
    assert verify_password("new-password-1", stored["password_hash"])


def test_change_password_enforces_minimum_length(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    response = api_client.put(
        "/api/auth/change-password",
        json={"current_password": ADMIN_PASSWORD, "new_password": "short"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_upload_image(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    response = api_client.post(
        "/api/upload",
        files={"file": ("photo.png", PNG_BYTES, "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["url"] == f"/uploads/{data['filename']}"
    assert data["mimetype"] == "image/png"
    assert data["size"] == len(PNG_BYTES)


def test_upload_requires_admin(api_client: TestClient) -> None:
    response = api_client.post("/api/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})
    assert response.status_code == 401


def test_change_password_rejects_input_longer_than_bcrypt_accepts(
    api_client: TestClient,
    admin_headers: dict[str, str],
) -> None:
    for new_password in ("x" * 100, "é" * 40):
        response = api_client.put(
            "/api/auth/change-password",
            json={"current_password": ADMIN_PASSWORD, "new_password": new_password},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"


def test_change_password_accepts_exactly_72_bytes(
    api_client: TestClient,
    admin: dict[str, Any],
    admin_headers: dict[str, str],
    memory_repo: InMemoryRepository,
) -> None:
    response = api_client.put(
        "/api/auth/change-password",
        json={"current_password": ADMIN_PASSWORD, "new_password": "y" * 72},
        headers=admin_headers,
    )
    assert response.status_code == 200
    stored = run(memory_repo.get_admin_by_id(admin["id"]))
    assert stored is not None
    assert verify_password("y" * 72, stored["password_hash"])


def test_login_with_oversized_password_is_rejected_not_crashed(
    api_client: TestClient, admin: dict[str, Any]
) -> None:
    response = api_client.post("/api/auth/admin/login", json={"username": ADMIN_USERNAME, "password": "z" * 100})
    assert response.status_code == 401
