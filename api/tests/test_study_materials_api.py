from __future__ import annotations

from fastapi.testclient import TestClient

PDF_BYTES = b"%PDF-1.4\n% syllabus\n"


def _create_material(client: TestClient, headers: dict[str, str], **fields: str) -> dict:
    data = {"post_name": "Junior Clerk", "title": "Syllabus", **fields}
    response = client.post(
        "/api/study-materials",
        data=data,
        files={"file": ("syllabus.pdf", PDF_BYTES, "application/pdf")},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_material_has_no_slug(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    material = _create_material(api_client, admin_headers)
    assert "slug" not in material
    assert material["post_name"] == "Junior Clerk"
    assert material["file_name"] == "syllabus.pdf"


def test_list_materials_filters_post_name_by_substring(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    _create_material(api_client, admin_headers, post_name="Junior Clerk")
    _create_material(api_client, admin_headers, post_name="Senior Clerk", title="Previous Papers")
    _create_material(api_client, admin_headers, post_name="Constable", title="Physical Test")

    response = api_client.get("/api/study-materials", params={"post_name": "clerk"})
    data = response.json()["data"]
    assert data["pagination"]["total"] == 2
    assert {item["post_name"] for item in data["items"]} == {"Junior Clerk", "Senior Clerk"}

    posts = api_client.get("/api/study-materials/posts").json()["data"]
    assert posts == ["Constable", "Junior Clerk", "Senior Clerk"]


def test_material_lookup_is_by_id_only(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    material = _create_material(api_client, admin_headers)

    assert api_client.get(f"/api/study-materials/{material['id']}").status_code == 200
    assert api_client.get("/api/study-materials/syllabus").status_code == 404


def test_download_material(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    material = _create_material(api_client, admin_headers)

    response = api_client.get(f"/api/study-materials/{material['id']}/download")
    assert response.status_code == 200
    assert response.content == PDF_BYTES

    refreshed = api_client.get(f"/api/study-materials/{material['id']}").json()["data"]
    assert refreshed["download_count"] == 1


def test_deactivated_material_cannot_be_downloaded(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    material = _create_material(api_client, admin_headers)

    response = api_client.put(
        f"/api/study-materials/{material['id']}",
        data={"is_active": "false"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False
    assert api_client.get(f"/api/study-materials/{material['id']}/download").status_code == 404


def test_delete_material(api_client: TestClient, admin_headers: dict[str, str]) -> None:
    material = _create_material(api_client, admin_headers)

    response = api_client.delete(f"/api/study-materials/{material['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert api_client.get(f"/api/study-materials/{material['id']}", headers=admin_headers).status_code == 404
