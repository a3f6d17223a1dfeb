from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Protocol

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from app.core.config import get_settings
from app.services.entities import EntitySpec, entity_spec, parse_record_id


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""


class RepositoryDuplicateKeyError(RepositoryError):
    """Raised when a write collides with a unique constraint."""

    def __init__(self, message: str, *, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint


class RecordStore(Protocol):
    async def close(self) -> None: ...

    async def insert_record(self, kind: str, fields: dict[str, Any]) -> dict[str, Any]: ...

    async def update_record(self, kind: str, record_id: int, fields: dict[str, Any]) -> dict[str, Any]: ...

    async def get_record(self, kind: str, key: str | int, *, include_inactive: bool = False) -> dict[str, Any] | None: ...

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
    ) -> tuple[list[dict[str, Any]], int]: ...

    async def delete_record(self, kind: str, record_id: int) -> bool: ...

    async def increment_download_count(self, kind: str, record_id: int) -> None: ...

    async def slug_exists(self, kind: str, slug: str, *, exclude_id: int | None = None) -> bool: ...

    async def list_distinct(self, kind: str, column: str) -> list[str]: ...

    async def count_by(self, kind: str, column: str) -> dict[str, int]: ...

    async def create_admin(self, *, username: str, password_hash: str, email: str | None = None) -> dict[str, Any]: ...

    async def get_admin_by_id(self, admin_id: int) -> dict[str, Any] | None: ...

    async def get_admin_by_username(self, username: str) -> dict[str, Any] | None: ...

    async def update_admin_password(self, admin_id: int, password_hash: str) -> None: ...


def check_writable_fields(spec: EntitySpec, fields: dict[str, Any]) -> None:
    unknown = spec.unknown_columns(fields)
    if unknown:
        raise RepositoryValidationError(f"unknown {spec.kind} fields: {sorted(unknown)}")


def check_filter_columns(spec: EntitySpec, *groups: dict[str, Any] | None) -> None:
    for group in groups:
        unknown = set(group or {}) - set(spec.filter_columns)
        if unknown:
            raise RepositoryValidationError(f"unsupported {spec.kind} filters: {sorted(unknown)}")


ADMIN_COLUMNS = "id, username, password_hash, email, created_at, updated_at"


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def insert_record(self, kind: str, fields: dict[str, Any]) -> dict[str, Any]:
        spec = entity_spec(kind)
        check_writable_fields(spec, fields)
        if not fields:
            raise RepositoryValidationError("no fields to insert")

        columns = list(fields)
        placeholders = ", ".join(f"${index}" for index in range(1, len(columns) + 1))
        pool = await self._get_pool()
        async with self._translate_errors():
            row = await pool.fetchrow(
                f"""
                insert into {spec.table} ({", ".join(columns)})
                values ({placeholders})
                returning {", ".join(spec.output_columns)}
                """,
                *(fields[column] for column in columns),
            )
        if row is None:
            raise RepositoryError(f"failed to insert {spec.kind} record")
        return dict(row)

    async def update_record(self, kind: str, record_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        spec = entity_spec(kind)
        check_writable_fields(spec, fields)
        if not fields:
            raise RepositoryValidationError("no fields to update")

        columns = list(fields)
        assignments = ", ".join(f"{column} = ${index}" for index, column in enumerate(columns, start=1))
        pool = await self._get_pool()
        async with self._translate_errors():
            row = await pool.fetchrow(
                f"""
                update {spec.table}
                set {assignments}, updated_at = now()
                where id = ${len(columns) + 1}
                returning {", ".join(spec.output_columns)}
                """,
                *(fields[column] for column in columns),
                record_id,
            )
        if row is None:
            raise RepositoryNotFoundError(f"{spec.label} not found")
        return dict(row)

    async def get_record(self, kind: str, key: str | int, *, include_inactive: bool = False) -> dict[str, Any] | None:
        spec = entity_spec(kind)
        active_sql = "" if include_inactive else " and is_active = true"
        select_sql = f"select {', '.join(spec.output_columns)} from {spec.table}"
        pool = await self._get_pool()

        record_id = parse_record_id(key)
        async with self._translate_errors():
            if record_id is not None:
                row = await pool.fetchrow(f"{select_sql} where id = $1{active_sql}", record_id)
                if row is not None:
                    return dict(row)
            if not spec.has_slug:
                return None
            row = await pool.fetchrow(f"{select_sql} where slug = $1{active_sql}", str(key))
        return dict(row) if row is not None else None

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
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if not include_inactive:
            conditions.append("is_active = true")
        for column, value in (equals or {}).items():
            if value is not None:
                conditions.append(f"{column} = {bind(value)}")
        for column, value in (contains or {}).items():
            if value:
                conditions.append(f"{column} ilike {bind(f'%{value}%')}")

        normalized_search = (search or "").strip()
        if normalized_search:
            token = bind(f"%{normalized_search}%")
            conditions.append(
                "(" + " or ".join(f"coalesce({column}, '') ilike {token}" for column in spec.search_columns) + ")"
            )

        where_sql = " and ".join(conditions) if conditions else "true"
        filter_params = list(params)
        limit_token = bind(limit)
        offset_token = bind(offset)

        pool = await self._get_pool()
        async with self._translate_errors():
            rows = await pool.fetch(
                f"""
                select {", ".join(spec.output_columns)}
                from {spec.table}
                where {where_sql}
                order by created_at desc, id desc
                limit {limit_token}
                offset {offset_token}
                """,
                *params,
            )
            total = await pool.fetchval(
                f"select count(*) from {spec.table} where {where_sql}",
                *filter_params,
            )
        return [dict(row) for row in rows], int(total or 0)

    async def delete_record(self, kind: str, record_id: int) -> bool:
        spec = entity_spec(kind)
        pool = await self._get_pool()
        async with self._translate_errors():
            row = await pool.fetchrow(f"delete from {spec.table} where id = $1 returning id", record_id)
        return row is not None

    async def increment_download_count(self, kind: str, record_id: int) -> None:
        spec = entity_spec(kind)
        if not spec.tracks_downloads:
            raise RepositoryValidationError(f"{spec.kind} records do not track downloads")
        pool = await self._get_pool()
        async with self._translate_errors():
            await pool.execute(
                f"update {spec.table} set download_count = download_count + 1 where id = $1",
                record_id,
            )

    async def slug_exists(self, kind: str, slug: str, *, exclude_id: int | None = None) -> bool:
        spec = entity_spec(kind)
        if not spec.has_slug:
            raise RepositoryValidationError(f"{spec.kind} records have no slug")
        pool = await self._get_pool()
        async with self._translate_errors():
            if exclude_id is None:
                row = await pool.fetchrow(f"select id from {spec.table} where slug = $1", slug)
            else:
                row = await pool.fetchrow(
                    f"select id from {spec.table} where slug = $1 and id <> $2",
                    slug,
                    exclude_id,
                )
        return row is not None

    async def list_distinct(self, kind: str, column: str) -> list[str]:
        spec = entity_spec(kind)
        check_filter_columns(spec, {column: None})
        pool = await self._get_pool()
        async with self._translate_errors():
            rows = await pool.fetch(
                f"""
                select distinct {column} as value
                from {spec.table}
                where is_active = true
                  and {column} is not null
                order by {column}
                """
            )
        return [str(row["value"]) for row in rows]

    async def count_by(self, kind: str, column: str) -> dict[str, int]:
        spec = entity_spec(kind)
        check_filter_columns(spec, {column: None})
        pool = await self._get_pool()
        async with self._translate_errors():
            rows = await pool.fetch(
                f"select {column}::text as value, count(*) as total from {spec.table} group by {column}"
            )
        return {str(row["value"]): int(row["total"]) for row in rows}

    async def create_admin(self, *, username: str, password_hash: str, email: str | None = None) -> dict[str, Any]:
        pool = await self._get_pool()
        async with self._translate_errors():
            row = await pool.fetchrow(
                f"""
                insert into admins (username, password_hash, email)
                values ($1, $2, $3)
                returning {ADMIN_COLUMNS}
                """,
                username.strip(),
                password_hash,
                email,
            )
        if row is None:
            raise RepositoryError("failed to create admin")
        return dict(row)

    async def get_admin_by_id(self, admin_id: int) -> dict[str, Any] | None:
        pool = await self._get_pool()
        async with self._translate_errors():
            row = await pool.fetchrow(f"select {ADMIN_COLUMNS} from admins where id = $1", admin_id)
        return dict(row) if row is not None else None

    async def get_admin_by_username(self, username: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        async with self._translate_errors():
            row = await pool.fetchrow(f"select {ADMIN_COLUMNS} from admins where username = $1", username.strip())
        return dict(row) if row is not None else None

    async def update_admin_password(self, admin_id: int, password_hash: str) -> None:
        pool = await self._get_pool()
        async with self._translate_errors():
            row = await pool.fetchrow(
                """
                update admins
                set password_hash = $2, updated_at = now()
                where id = $1
                returning id
                """,
                admin_id,
                password_hash,
            )
        if row is None:
            raise RepositoryNotFoundError("admin not found")

    @asynccontextmanager
    async def _translate_errors(self) -> AsyncIterator[None]:
        try:
            yield
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryDuplicateKeyError(
                "duplicate key",
                constraint=getattr(exc, "constraint_name", None),
            ) from exc
        except (
            pg_exc.InvalidTextRepresentationError,
            pg_exc.CheckViolationError,
            pg_exc.NotNullViolationError,
            asyncpg.DataError,
        ) as exc:
            raise RepositoryValidationError(str(exc)) from exc
        except (
            OSError,
            TimeoutError,
            asyncpg.InterfaceError,
            pg_exc.PostgresConnectionError,
            pg_exc.CannotConnectNowError,
        ) as exc:
            raise RepositoryUnavailableError("database unavailable") from exc

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("EP_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc


@lru_cache
def get_repository() -> RecordStore:
    settings = get_settings()
    if settings.storage_backend == "memory":
        from app.services.memory import InMemoryRepository

        return InMemoryRepository()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
