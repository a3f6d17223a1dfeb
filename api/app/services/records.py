"""
Create/update/delete orchestration shared by every entity router.

Slugged records go through `write_with_unique_slug`: resolve a free slug,
attempt the write, and on a duplicate-key rejection (a concurrent writer won
the same value) resolve again and retry, up to `write_attempts` times.

Attachment side effects are ordered around the record write: a newly stored
file is removed if the write fails, and a replaced file is removed only after
the write has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from app.core.slugs import DEFAULT_MAX_CANDIDATES, SlugExhaustedError, resolve_unique_slug, slugify
from app.services.entities import EntitySpec
from app.services.files import FileStore, StoredFile
from app.services.repository import RecordStore, RepositoryDuplicateKeyError, RepositoryNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_WRITE_ATTEMPTS = 5


async def write_with_unique_slug(
    repository: RecordStore,
    spec: EntitySpec,
    title: str,
    write: Callable[[str], Awaitable[dict[str, Any]]],
    *,
    exclude_id: int | None = None,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    write_attempts: int = DEFAULT_WRITE_ATTEMPTS,
) -> dict[str, Any]:
    assert spec.slug_rule is not None
    base = slugify(title, spec.slug_rule)

    async def exists(candidate: str, excluded: int | None) -> bool:
        return await repository.slug_exists(spec.kind, candidate, exclude_id=excluded)

    attempts = max(1, write_attempts)
    for attempt in range(1, attempts + 1):
        slug = await resolve_unique_slug(base, exists, exclude_id=exclude_id, max_candidates=max_candidates)
        try:
            return await write(slug)
        except RepositoryDuplicateKeyError:
            logger.warning(
                "slug taken by concurrent write kind=%s slug=%s attempt=%s/%s",
                spec.kind,
                slug,
                attempt,
                attempts,
            )
    raise SlugExhaustedError(base, attempts)


async def create_record(
    repository: RecordStore,
    spec: EntitySpec,
    fields: dict[str, Any],
    *,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    write_attempts: int = DEFAULT_WRITE_ATTEMPTS,
) -> dict[str, Any]:
    if not spec.has_slug:
        record = await repository.insert_record(spec.kind, fields)
    else:
        record = await write_with_unique_slug(
            repository,
            spec,
            str(fields.get("title") or ""),
            lambda slug: repository.insert_record(spec.kind, {**fields, "slug": slug}),
            max_candidates=max_candidates,
            write_attempts=write_attempts,
        )
    logger.info("record created kind=%s id=%s slug=%s", spec.kind, record["id"], record.get("slug"))
    return record


async def update_record(
    repository: RecordStore,
    spec: EntitySpec,
    existing: dict[str, Any],
    changes: dict[str, Any],
    *,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    write_attempts: int = DEFAULT_WRITE_ATTEMPTS,
) -> dict[str, Any]:
    record_id = int(existing["id"])
    new_title = changes.get("title")
    if spec.has_slug and new_title is not None and new_title != existing.get("title"):
        record = await write_with_unique_slug(
            repository,
            spec,
            str(new_title),
            lambda slug: repository.update_record(spec.kind, record_id, {**changes, "slug": slug}),
            exclude_id=record_id,
            max_candidates=max_candidates,
            write_attempts=write_attempts,
        )
    else:
        record = await repository.update_record(spec.kind, record_id, changes)
    logger.info("record updated kind=%s id=%s slug=%s", spec.kind, record_id, record.get("slug"))
    return record


async def require_record(
    repository: RecordStore,
    spec: EntitySpec,
    key: str | int,
    *,
    include_inactive: bool = True,
) -> dict[str, Any]:
    record = await repository.get_record(spec.kind, key, include_inactive=include_inactive)
    if record is None:
        raise RepositoryNotFoundError(f"{spec.label} not found")
    return record


async def create_with_attachment(
    repository: RecordStore,
    file_store: FileStore,
    spec: EntitySpec,
    fields: dict[str, Any],
    stored: StoredFile | None,
    *,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    write_attempts: int = DEFAULT_WRITE_ATTEMPTS,
) -> dict[str, Any]:
    if stored is not None:
        fields = {**fields, **_attachment_fields(spec, stored)}
    try:
        return await create_record(
            repository,
            spec,
            fields,
            max_candidates=max_candidates,
            write_attempts=write_attempts,
        )
    except Exception:
        if stored is not None:
            file_store.delete(stored.path)
        raise


async def update_with_attachment(
    repository: RecordStore,
    file_store: FileStore,
    spec: EntitySpec,
    key: str | int,
    changes: dict[str, Any],
    stored: StoredFile | None,
    *,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    write_attempts: int = DEFAULT_WRITE_ATTEMPTS,
) -> dict[str, Any]:
    try:
        existing = await require_record(repository, spec, key)
        if stored is not None:
            changes = {**changes, **_attachment_fields(spec, stored)}
        record = await update_record(
            repository,
            spec,
            existing,
            changes,
            max_candidates=max_candidates,
            write_attempts=write_attempts,
        )
    except Exception:
        if stored is not None:
            file_store.delete(stored.path)
        raise

    previous_path = existing.get(spec.file_column) if spec.file_column else None
    if stored is not None and previous_path and previous_path != stored.path:
        file_store.delete(previous_path)
    return record


async def delete_with_attachment(
    repository: RecordStore,
    file_store: FileStore | None,
    spec: EntitySpec,
    key: str | int,
) -> dict[str, Any]:
    existing = await require_record(repository, spec, key)
    record_id = int(existing["id"])

    if spec.soft_delete:
        record = await repository.update_record(spec.kind, record_id, {"is_active": False})
        logger.info("record deactivated kind=%s id=%s", spec.kind, record_id)
        return record

    if not await repository.delete_record(spec.kind, record_id):
        raise RepositoryNotFoundError(f"{spec.label} not found")
    logger.info("record deleted kind=%s id=%s", spec.kind, record_id)

    if file_store is not None and spec.file_column:
        file_store.delete(existing.get(spec.file_column))
    return existing


def _attachment_fields(spec: EntitySpec, stored: StoredFile) -> dict[str, Any]:
    return spec.attachment_fields(
        path=stored.path,
        original_name=stored.original_name,
        size=stored.size,
        mime_type=stored.mime_type,
    )
