from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from app.core.slugs import SlugRule

EntityKind = Literal["jobs", "news", "notes", "study_materials"]

JOB_TYPES = ("government", "private")
CLASS_LEVELS = ("8", "9", "10", "11", "12")

_ATTACHMENT_COLUMNS = ("file_path", "file_name", "file_size", "file_type")
_MAX_RECORD_ID = 2**63 - 1


@dataclass(frozen=True, slots=True)
class EntitySpec:
    kind: EntityKind
    table: str
    label: str
    columns: tuple[str, ...]
    search_columns: tuple[str, ...]
    filter_columns: tuple[str, ...] = ()
    slug_rule: SlugRule | None = None
    soft_delete: bool = False
    file_column: str | None = None
    tracks_downloads: bool = False

    @property
    def has_slug(self) -> bool:
        return self.slug_rule is not None

    @property
    def writable_columns(self) -> tuple[str, ...]:
        if self.has_slug:
            return (*self.columns, "slug")
        return self.columns

    @property
    def output_columns(self) -> tuple[str, ...]:
        columns: list[str] = ["id"]
        if self.has_slug:
            columns.append("slug")
        columns.extend(self.columns)
        if self.tracks_downloads:
            columns.append("download_count")
        columns.extend(("created_at", "updated_at"))
        return tuple(columns)

    def unknown_columns(self, fields: dict[str, Any]) -> set[str]:
        return set(fields) - set(self.writable_columns)

    def attachment_fields(self, *, path: str, original_name: str, size: int, mime_type: str) -> dict[str, Any]:
        if self.file_column is None:
            return {}
        if self.file_column == "file_path":
            return dict(zip(_ATTACHMENT_COLUMNS, (path, original_name, size, mime_type)))
        return {self.file_column: path}


JOBS = EntitySpec(
    kind="jobs",
    table="jobs",
    label="Job",
    columns=(
        "title",
        "description",
        "company",
        "job_type",
        "post_name",
        "qualification",
        "salary",
        "last_date",
        "apply_link",
        "is_active",
    ),
    search_columns=("title", "company", "post_name"),
    filter_columns=("job_type",),
    slug_rule=SlugRule.WORD,
)

NEWS = EntitySpec(
    kind="news",
    table="education_news",
    label="News",
    columns=(
        "title",
        "content",
        "excerpt",
        "category",
        "image_path",
        "news_type",
        "status",
        "exam_date",
        "important_dates",
        "tags",
        "is_active",
    ),
    search_columns=("title", "excerpt", "content"),
    filter_columns=("news_type", "category", "status"),
    slug_rule=SlugRule.STRICT,
    soft_delete=True,
    file_column="image_path",
)

NOTES = EntitySpec(
    kind="notes",
    table="notes",
    label="Note",
    columns=(
        "title",
        "subject",
        "class_level",
        "description",
        "author",
        *_ATTACHMENT_COLUMNS,
        "is_active",
    ),
    search_columns=("title", "description", "subject"),
    filter_columns=("class_level", "subject"),
    slug_rule=SlugRule.STRICT,
    file_column="file_path",
    tracks_downloads=True,
)

STUDY_MATERIALS = EntitySpec(
    kind="study_materials",
    table="study_materials",
    label="Study material",
    columns=(
        "post_name",
        "title",
        "description",
        *_ATTACHMENT_COLUMNS,
        "is_active",
    ),
    search_columns=("title", "description"),
    filter_columns=("post_name",),
    file_column="file_path",
    tracks_downloads=True,
)

ENTITY_SPECS: dict[str, EntitySpec] = {spec.kind: spec for spec in (JOBS, NEWS, NOTES, STUDY_MATERIALS)}


def entity_spec(kind: str) -> EntitySpec:
    try:
        return ENTITY_SPECS[kind]
    except KeyError as exc:
        raise ValueError(f"unknown entity kind: {kind}") from exc


def parse_record_id(key: str | int) -> int | None:
    if isinstance(key, int):
        return key
    stripped = key.strip()
    if stripped.isascii() and stripped.isdigit():
        value = int(stripped)
        # bigserial upper bound
        return value if value <= _MAX_RECORD_ID else None
    return None
