from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.services.files import FileStore

PDF_BYTES = b"%PDF-1.4\n% test document\n"


def _create_note(client: TestClient, headers: dict[str, str], **fields: str) -> dict:
    data = {"title": "Algebra Basics", "subject": "Maths", "class_level": "10", **fields}
    response = client.post(
        "/api/notes",
        data=data,
        files={"file": ("algebra.pdf", PDF_BYTES, "application/pdf")},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _stored_paths(file_store: FileStore) -> list[str]:
    notes_dir = file_store.root / "notes"
    if not notes_dir.exists():
        return []
    return sorted(path.name for path in notes_dir.iterdir())


def test_create_note_stores_pdf(api_client: TestClient, admin_headers: dict[str, str], file_store: FileStore) -> None:
    note = _create_note(api_client, admin_headers)

    assert note["slug"] == "algebra-basics"
    assert note["author"] == "Unknown"
    assert note["file_name"] == "algebra.pdf"
    assert note["file_size"] == len(PDF_BYTES)
    assert note["file_type"] == "application/pdf"
    assert note["download_count"] == 0
    assert len(_stored_paths(file_store)) == 1


def test_create_note_requires_file(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    response = api_client.post(
        "/api/notes",
        data={"title": "No File", "subject": "Maths", "class_level": "10"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_create_note_rejects_non_pdf(api_client: TestClient, admin_headers: dict[str, str], file_store: FileStore) -> None:
    response = api_client.post(
        "/api/notes",
        data={"title": "Image", "subject": "Maths", "class_level": "10"},
        files={"file": ("scan.png", b"png", "image/png")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert _stored_paths(file_store) == []


def test_create_note_rejects_unknown_class_level(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    response = api_client.post(
        "/api/notes",
        data={"title": "Bad Level", "subject": "Maths", "class_level": "7"},
        files={"file": ("a.pdf", PDF_BYTES, "application/pdf")},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_oversized_pdf_is_rejected(
    api_client: TestClient,
    admin_headers: dict[str, str],
    file_store: FileStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("EP_DOCUMENT_MAX_BYTES", "8")
    get_settings.cache_clear()
    response = api_client.post(
        "/api/notes",
        data={"title": "Huge", "subject": "Maths", "class_level": "10"},
        files={"file": ("huge.pdf", PDF_BYTES, "application/pdf")},
        headers=admin_headers,
    )
    assert response.status_code == 413
    assert _stored_paths(file_store) == []


def test_download_note_counts_downloads(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    note = _create_note(api_client, admin_headers)

    response = api_client.get(f"/api/notes/{note['slug']}/download")
    assert response.status_code == 200
    assert response.content == PDF_BYTES
    assert response.headers["content-type"] == "application/pdf"
    assert "algebra.pdf" in response.headers["content-disposition"]

    api_client.get(f"/api/notes/{note['id']}/download")
    refreshed = api_client.get(f"/api/notes/{note['slug']}").json()["data"]
    assert refreshed["download_count"] == 2


def test_download_missing_file_returns_404(
    api_client: TestClient,
    admin_headers: dict[str, str],
    file_store: FileStore,
) -> None:
    note = _create_note(api_client, admin_headers)
    for name in _stored_paths(file_store):
        file_store.delete(f"notes/{name}")

    response = api_client.get(f"/api/notes/{note['slug']}/download")
    assert response.status_code == 404
    assert response.json()["error"] == "File not found"


def test_list_notes_and_subjects(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    _create_note(api_client, admin_headers, title="Algebra", subject="Maths", class_level="10")
    _create_note(api_client, admin_headers, title="Optics", subject="Physics", class_level="12")
    _create_note(api_client, admin_headers, title="Geometry", subject="Maths", class_level="12")

    response = api_client.get("/api/notes", params={"class_level": "12", "subject": "Maths"})
    assert [item["slug"] for item in response.json()["data"]["items"]] == ["geometry"]

    subjects = api_client.get("/api/notes/subjects").json()["data"]
    assert subjects == ["Maths", "Physics"]


def test_update_note_replaces_file_after_commit(
    api_client: TestClient,
    admin_headers: dict[str, str],
    file_store: FileStore,
) -> None:
    note = _create_note(api_client, admin_headers)
    before = _stored_paths(file_store)

    response = api_client.put(
        f"/api/notes/{note['slug']}",
        data={"title": "Algebra Advanced"},
        files={"file": ("advanced.pdf", PDF_BYTES + b"v2", "application/pdf")},
        headers=admin_headers,
    )
    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["slug"] == "algebra-advanced"
    assert updated["file_name"] == "advanced.pdf"
    after = _stored_paths(file_store)
    assert len(after) == 1
    assert after != before


def test_delete_note_removes_file(api_client: TestClient, admin_headers: dict[str, str], file_store: FileStore) -> None:
    note = _create_note(api_client, admin_headers)

    response = api_client.delete(f"/api/notes/{note['slug']}", headers=admin_headers)
    assert response.status_code == 200
    assert _stored_paths(file_store) == []
    assert api_client.get(f"/api/notes/{note['id']}", headers=admin_headers).status_code == 404
