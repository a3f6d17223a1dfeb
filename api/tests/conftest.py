from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Iterator
from pathlib import Path
from typing import Any, TypeVar

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.http_security import limiter
from app.core.security import build_access_token, hash_password
from app.main import app
from app.services.files import FileStore, get_file_store
from app.services.memory import InMemoryRepository
from app.services.repository import get_repository

T = TypeVar("T")

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-password"


def run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


@pytest.fixture
def memory_repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def file_store(tmp_path: Path) -> FileStore:
    store = FileStore(tmp_path / "uploads", url_prefix="/uploads")
    store.ensure_root()
    return store


@pytest.fixture
def api_client(
    memory_repo: InMemoryRepository,
    file_store: FileStore,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    monkeypatch.setenv("EP_STORAGE_BACKEND", "memory")
    monkeypatch.setenv("EP_UPLOAD_DIR", str(tmp_path / "uploads"))
    get_settings.cache_clear()
    get_repository.cache_clear()
    get_file_store.cache_clear()
    limiter.reset()

    app.dependency_overrides[get_repository] = lambda: memory_repo
    app.dependency_overrides[get_file_store] = lambda: file_store

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    get_file_store.cache_clear()
    get_repository.cache_clear()
    get_settings.cache_clear()


@pytest.fixture
def admin(memory_repo: InMemoryRepository) -> dict[str, Any]:
    return run(
        memory_repo.create_admin(
            username=ADMIN_USERNAME,
            password_hash=hash_password(ADMIN_PASSWORD, rounds=4),
            email="admin@example.edu",
        )
    )


@pytest.fixture
def admin_headers(admin: dict[str, Any]) -> dict[str, str]:
    token = build_access_token(admin_id=admin["id"], username=admin["username"], settings=get_settings())
    return {"Authorization": f"Bearer {token}"}
