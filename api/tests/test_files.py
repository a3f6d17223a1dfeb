from __future__ import annotations

import asyncio
import io
from pathlib import Path

import pytest
from starlette.datastructures import Headers, UploadFile

from app.services.files import (
    DOCUMENT_MIME_TYPES,
    FileRejectedError,
    FileStore,
    FileTooLargeError,
    UploadConstraints,
)

PDF_LIMIT = UploadConstraints(max_bytes=1024, allowed_mime_types=DOCUMENT_MIME_TYPES)


def _upload(filename: str, content: bytes, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def test_save_stores_file_under_subdir(tmp_path: Path) -> None:
    store = FileStore(tmp_path, url_prefix="/uploads/")
    stored = asyncio.run(
        store.save(_upload("Chapter 1.PDF", b"%PDF-1.4 body", "application/pdf"), PDF_LIMIT, subdir="notes", prefix="note")
    )

    assert stored.path.startswith("notes/note-")
    assert stored.path.endswith(".pdf")
    assert stored.original_name == "Chapter 1.PDF"
    assert stored.size == len(b"%PDF-1.4 body")
    assert stored.mime_type == "application/pdf"
    assert stored.url == f"/uploads/{stored.path}"
    assert (tmp_path / stored.path).read_bytes() == b"%PDF-1.4 body"


def test_save_rejects_disallowed_mime_type(tmp_path: Path) -> None:
    store = FileStore(tmp_path)
    with pytest.raises(FileRejectedError):
        asyncio.run(store.save(_upload("photo.png", b"png", "image/png"), PDF_LIMIT))
    assert list(tmp_path.iterdir()) == []


def test_save_rejects_oversized_upload_and_leaves_nothing(tmp_path: Path) -> None:
    store = FileStore(tmp_path)
    with pytest.raises(FileTooLargeError) as exc_info:
        asyncio.run(store.save(_upload("big.pdf", b"x" * 2048, "application/pdf"), PDF_LIMIT, subdir="notes"))
    assert "Maximum size" in str(exc_info.value)
    assert list((tmp_path / "notes").iterdir()) == []


def test_original_name_is_stripped_of_directories(tmp_path: Path) -> None:
    store = FileStore(tmp_path)
    stored = asyncio.run(store.save(_upload("../../etc/passwd.pdf", b"%PDF", "application/pdf"), PDF_LIMIT))
    assert stored.original_name == "passwd.pdf"
    assert (tmp_path / stored.path).is_file()


def test_resolve_refuses_paths_outside_root(tmp_path: Path) -> None:
    store = FileStore(tmp_path / "uploads")
    with pytest.raises(FileRejectedError):
        store.resolve("../secret.txt")
    assert store.exists("../secret.txt") is False


def test_delete_and_open_for_read(tmp_path: Path) -> None:
    store = FileStore(tmp_path)
    (tmp_path / "doc.pdf").write_bytes(b"%PDF data")

    with store.open_for_read("doc.pdf") as handle:
        assert handle.read() == b"%PDF data"
    assert store.delete("doc.pdf") is True
    assert store.delete("doc.pdf") is False
    assert store.delete(None) is False
