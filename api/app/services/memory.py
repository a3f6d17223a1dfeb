from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import datetime, timezone
from itertools import count
from typing import Any

from app.services.entities import ENTITY_SPECS, entity_spec, parse_record_id
from app.services.repository import (
    RepositoryDuplicateKeyError,
    RepositoryNotFoundError,
    RepositoryValidationError,
    check_filter_columns,
    check_writable_fields,
)

_COLUMN_DEFAULTS: dict[str, Any] = {
    "is_active": True,
    "download_count": 0,
}


class InMemoryRepository:
    """Process-local record store with the same contract as `PostgresRepository`.

    Slug uniqueness is enforced on write the way the database's unique
    constraint would, so callers exercise the same duplicate-key paths.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[int, dict[str, Any]]] = {kind: {} for kind in ENTITY_SPECS}
        self.admins: dict[int, dict[str, Any]] = {}
        self._ids: dict[str, count] = defaultdict(lambda: count(1))

    async def close(self) -> None:
        return None

    async def insert_record(self, kind: str, fields: dict[str, Any]) -> dict[str, Any]:
        spec = entity_spec(kind)
        check_writable_fields(spec, fields)
        if not fields:
            raise RepositoryValidationError("no fields to insert")
        await asyncio.sleep(0)

        table = self.tables[spec.kind]
        self._check_slug_free(spec.kind, fields.get("slug"), exclude_id=None)
        now = datetime.now(timezone.utc)
        record_id = next(self._ids[spec.kind])
        row = {column: fields.get(column, _COLUMN_DEFAULTS.get(column)) for column in spec.output_columns}
        row.update({"id": record_id, "created_at": now, "updated_at": now})
        table[record_id] = row
        return dict(row)

    async def update_record(self, kind: str, record_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        spec = entity_spec(kind)
        check_writable_fields(spec, fields)
        if not fields:
            raise RepositoryValidationError("no fields to update")
        await asyncio.sleep(0)

        row = self.tables[spec.kind].get(record_id)
        if row is None:
            raise RepositoryNotFoundError(f"{spec.label} not found")
        if "slug" in fields:
            self._check_slug_free(spec.kind, fields["slug"], exclude_id=record_id)
        row.update(fields)
        row["updated_at"] = datetime.now(timezone.utc)
        return dict(row)

    async def get_record(self, kind: str, key: str | int, *, include_inactive: bool = False) -> dict[str, Any] | None:
        spec = entity_spec(kind)
        table = self.tables[spec.kind]

        def visible(row: dict[str, Any] | None) -> bool:
            return row is not None and (include_inactive or bool(row.get("is_active")))

        record_id = parse_record_id(key)
        if record_id is not None and visible(table.get(record_id)):
            return dict(table[record_id])
        if not spec.has_slug:
            return None
        for row in table.values():
            if row.get("slug") == str(key) and visible(row):
                return dict(row)
        return None

    async def list_records(
        self,
        kind: str,
        *,
        equals: dict[str, Any] | None = None,
        contains: dict[str, str] | None = None,
        search: str | None = None,
        include_inactive: bool = False,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        spec = entity_spec(kind)
        check_filter_columns(spec, equals, contains)
        rows = list(self.tables[spec.kind].values())

        if not include_inactive:
            rows = [row for row in rows if row.get("is_active")]
        for column, value in (equals or {}).items():
            if value is not None:
                rows = [row for row in rows if row.get(column) == value]
        for column, value in (contains or {}).items():
            if value:
                needle = value.lower()
                rows = [row for row in rows if needle in str(row.get(column) or "").lower()]

        normalized_search = (search or "").strip().lower()
        if normalized_search:
            rows = [
                row
                for row in rows
                if any(normalized_search in str(row.get(column) or "").lower() for column in spec.search_columns)
            ]

        rows.sort(key=lambda row: (row["created_at"], row["id"]), reverse=True)
        return [dict(row) for row in rows[offset : offset + limit]], len(rows)

    async def delete_record(self, kind: str, record_id: int) -> bool:
        spec = entity_spec(kind)
        return self.tables[spec.kind].pop(record_id, None) is not None

    async def increment_download_count(self, kind: str, record_id: int) -> None:
        spec = entity_spec(kind)
        if not spec.tracks_downloads:
            raise RepositoryValidationError(f"{spec.kind} records do not track downloads")
        row = self.tables[spec.kind].get(record_id)
        if row is not None:
            row["download_count"] = int(row.get("download_count") or 0) + 1

    async def slug_exists(self, kind: str, slug: str, *, exclude_id: int | None = None) -> bool:
        spec = entity_spec(kind)
        if not spec.has_slug:
            raise RepositoryValidationError(f"{spec.kind} records have no slug")
        # Yield like a database round-trip so concurrent writers interleave.
        await asyncio.sleep(0)
        return any(
            row.get("slug") == slug and record_id != exclude_id
            for record_id, row in self.tables[spec.kind].items()
        )

    async def list_distinct(self, kind: str, column: str) -> list[str]:
        spec = entity_spec(kind)
        check_filter_columns(spec, {column: None})
        values = {
            str(row[column])
            for row in self.tables[spec.kind].values()
            if row.get("is_active") and row.get(column) is not None
        }
        return sorted(values)

    async def count_by(self, kind: str, column: str) -> dict[str, int]:
        spec = entity_spec(kind)
        check_filter_columns(spec, {column: None})
        counts: dict[str, int] = defaultdict(int)
        for row in self.tables[spec.kind].values():
            counts[str(row.get(column))] += 1
        return dict(counts)

    async def create_admin(self, *, username: str, password_hash: str, email: str | None = None) -> dict[str, Any]:
        normalized = username.strip()
        if any(admin["username"] == normalized for admin in self.admins.values()):
            raise RepositoryDuplicateKeyError("duplicate key", constraint="admins_username_key")
        now = datetime.now(timezone.utc)
        admin_id = next(self._ids["admins"])
        admin = {
            "id": admin_id,
            "username": normalized,
            "password_hash": password_hash,
            "email": email,
            "created_at": now,
            "updated_at": now,
        }
        self.admins[admin_id] = admin
        return dict(admin)

    async def get_admin_by_id(self, admin_id: int) -> dict[str, Any] | None:
        admin = self.admins.get(admin_id)
        return dict(admin) if admin is not None else None

    async def get_admin_by_username(self, username: str) -> dict[str, Any] | None:
        normalized = username.strip()
        for admin in self.admins.values():
            if admin["username"] == normalized:
                return dict(admin)
        return None

    async def update_admin_password(self, admin_id: int, password_hash: str) -> None:
        admin = self.admins.get(admin_id)
        if admin is None:
            raise RepositoryNotFoundError("admin not found")
        admin["password_hash"] = password_hash
        admin["updated_at"] = datetime.now(timezone.utc)

    def _check_slug_free(self, kind: str, slug: Any, *, exclude_id: int | None) -> None:
        if slug is None:
            return
        for record_id, row in self.tables[kind].items():
            if record_id != exclude_id and row.get("slug") == slug:
                raise RepositoryDuplicateKeyError("duplicate key", constraint=f"{entity_spec(kind).table}_slug_key")
