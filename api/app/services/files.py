"""
Disk-backed storage for uploaded attachments.

Records keep a path relative to the store root (for example
`notes/note-1718000000000-123456789.pdf`); the public URL is that path under
`url_prefix`, served by the static mount in `app.main`.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
DOCUMENT_MIME_TYPES = frozenset({"application/pdf"})


class FileRejectedError(Exception):
    """Raised when an upload violates its constraints."""


class FileTooLargeError(FileRejectedError):
    pass


@dataclass(frozen=True, slots=True)
class UploadConstraints:
    max_bytes: int
    allowed_mime_types: frozenset[str]

    def describe_limit(self) -> str:
        return f"{self.max_bytes // (1024 * 1024)}MB"


@dataclass(frozen=True, slots=True)
class StoredFile:
    path: str
    original_name: str
    size: int
    mime_type: str
    url: str


class FileStore:
    def __init__(self, root: Path, *, url_prefix: str = "/uploads") -> None:
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def url_for(self, path: str) -> str:
        return f"{self.url_prefix}/{PurePosixPath(path).as_posix()}"

    def resolve(self, path: str) -> Path:
        root = self.root.resolve()
        candidate = (root / path).resolve()
        if candidate != root and root not in candidate.parents:
            raise FileRejectedError("path escapes the upload directory")
        return candidate

    def exists(self, path: str | None) -> bool:
        if not path:
            return False
        try:
            return self.resolve(path).is_file()
        except FileRejectedError:
            return False

    def delete(self, path: str | None) -> bool:
        if not self.exists(path):
            return False
        assert path is not None
        try:
            self.resolve(path).unlink()
        except FileNotFoundError:
            return False
        logger.info("upload removed path=%s", path)
        return True

    def open_for_read(self, path: str) -> BinaryIO:
        return self.resolve(path).open("rb")

    async def save(
        self,
        upload: UploadFile,
        constraints: UploadConstraints,
        *,
        subdir: str = "",
        prefix: str | None = None,
    ) -> StoredFile:
        mime_type = (upload.content_type or "").lower()
        if mime_type not in constraints.allowed_mime_types:
            raise FileRejectedError("File type not allowed")

        original_name = PurePosixPath(upload.filename or "upload").name
        suffix = PurePosixPath(original_name).suffix.lower()
        stem = prefix or PurePosixPath(original_name).stem or "upload"
        filename = f"{stem}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"
        relative_path = str(PurePosixPath(subdir, filename)) if subdir else filename

        target = self.resolve(relative_path)
        target.parent.mkdir(parents=True, exist_ok=True)

        size = 0
        handle = await run_in_threadpool(target.open, "wb")
        try:
            try:
                while chunk := await upload.read(CHUNK_SIZE):
                    size += len(chunk)
                    if size > constraints.max_bytes:
                        raise FileTooLargeError(
                            f"File too large. Maximum size is {constraints.describe_limit()}."
                        )
                    await run_in_threadpool(handle.write, chunk)
            finally:
                await run_in_threadpool(handle.close)
        except BaseException:
            target.unlink(missing_ok=True)
            raise

        logger.info("upload stored path=%s size=%s mime_type=%s", relative_path, size, mime_type)
        return StoredFile(
            path=relative_path,
            original_name=original_name,
            size=size,
            mime_type=mime_type,
            url=self.url_for(relative_path),
        )


def image_constraints(settings: Settings) -> UploadConstraints:
    return UploadConstraints(max_bytes=settings.image_max_bytes, allowed_mime_types=IMAGE_MIME_TYPES)


def document_constraints(settings: Settings) -> UploadConstraints:
    return UploadConstraints(max_bytes=settings.document_max_bytes, allowed_mime_types=DOCUMENT_MIME_TYPES)


@lru_cache
def get_file_store() -> FileStore:
    settings = get_settings()
    return FileStore(Path(settings.upload_dir), url_prefix=settings.upload_url_prefix)
