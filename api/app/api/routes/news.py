from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.api.errors import DOMAIN_ERRORS, http_error
from app.core.auth import Principal
from app.core.config import Settings, get_settings
from app.core.security import get_admin_principal, get_optional_principal
from app.schemas.common import Envelope, Page, Pagination
from app.schemas.news import NewsActivePatchRequest, NewsOut
from app.services import records
from app.services.entities import NEWS
from app.services.files import FileStore, StoredFile, get_file_store, image_constraints
from app.services.repository import RepositoryValidationError, get_repository

router = APIRouter()


def _news_out(row: dict[str, Any], file_store: FileStore) -> NewsOut:
    image_path = row.get("image_path")
    return NewsOut(**row, image_url=file_store.url_for(image_path) if image_path else None)


async def _store_image(image: UploadFile | None, file_store: FileStore, settings: Settings) -> StoredFile | None:
    if image is None or not image.filename:
        return None
    return await file_store.save(image, image_constraints(settings), subdir="news", prefix="news")


@router.get("", response_model=Envelope[Page[NewsOut]])
async def list_news(
    news_type: str | None = Query(default=None, min_length=1),
    category: str | None = Query(default=None, min_length=1),
    news_status: str | None = Query(default=None, min_length=1, alias="status"),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal | None = Depends(get_optional_principal),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[Page[NewsOut]]:
    try:
        rows, total = await repository.list_records(
            NEWS.kind,
            equals={"news_type": news_type, "category": category, "status": news_status},
            search=search,
            include_inactive=principal is not None,
            limit=limit,
            offset=(page - 1) * limit,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(
        data=Page(
            items=[_news_out(row, file_store) for row in rows],
            pagination=Pagination.build(page=page, limit=limit, total=total),
        )
    )


@router.get("/{key}", response_model=Envelope[NewsOut])
async def get_news_item(
    key: str,
    principal: Principal | None = Depends(get_optional_principal),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[NewsOut]:
    try:
        row = await records.require_record(repository, NEWS, key, include_inactive=principal is not None)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=_news_out(row, file_store))


@router.post("", response_model=Envelope[NewsOut], status_code=status.HTTP_201_CREATED)
async def create_news(
    title: str = Form(..., min_length=1, max_length=500),
    content: str = Form(..., min_length=1),
    excerpt: str | None = Form(default=None),
    category: str = Form(default="general"),
    news_type: str = Form(default="general"),
    news_status: str = Form(default="draft", alias="status"),
    exam_date: date | None = Form(default=None),
    important_dates: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    is_active: bool = Form(default=True),
    image: UploadFile | None = File(default=None),
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[NewsOut]:
    fields = {
        "title": title,
        "content": content,
        "excerpt": excerpt,
        "category": category,
        "news_type": news_type,
        "status": news_status,
        "exam_date": exam_date,
        "important_dates": important_dates,
        "tags": tags,
        "is_active": is_active,
    }
    try:
        stored = await _store_image(image, file_store, settings)
        row = await records.create_with_attachment(
            repository,
            file_store,
            NEWS,
            fields,
            stored,
            max_candidates=settings.slug_max_candidates,
            write_attempts=settings.slug_write_attempts,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=_news_out(row, file_store), message="News created successfully")


@router.put("/{key}", response_model=Envelope[NewsOut])
async def update_news(
    key: str,
    title: str | None = Form(default=None, min_length=1, max_length=500),
    content: str | None = Form(default=None, min_length=1),
    excerpt: str | None = Form(default=None),
    category: str | None = Form(default=None),
    news_type: str | None = Form(default=None),
    news_status: str | None = Form(default=None, alias="status"),
    exam_date: date | None = Form(default=None),
    important_dates: str | None = Form(default=None),
    tags: str | None = Form(default=None),
    is_active: bool | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[NewsOut]:
    submitted = {
        "title": title,
        "content": content,
        "excerpt": excerpt,
        "category": category,
        "news_type": news_type,
        "status": news_status,
        "exam_date": exam_date,
        "important_dates": important_dates,
        "tags": tags,
        "is_active": is_active,
    }
    changes = {field: value for field, value in submitted.items() if value is not None}
    try:
        stored = await _store_image(image, file_store, settings)
        if not changes and stored is None:
            raise RepositoryValidationError("No fields to update")
        row = await records.update_with_attachment(
            repository,
            file_store,
            NEWS,
            key,
            changes,
            stored,
            max_candidates=settings.slug_max_candidates,
            write_attempts=settings.slug_write_attempts,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=_news_out(row, file_store), message="News updated successfully")


@router.patch("/{key}", response_model=Envelope[NewsOut])
async def set_news_active(
    key: str,
    payload: NewsActivePatchRequest,
    _: Principal = Depends(get_admin_principal),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[NewsOut]:
    try:
        existing = await records.require_record(repository, NEWS, key)
        row = await repository.update_record(NEWS.kind, int(existing["id"]), {"is_active": payload.is_active})
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=_news_out(row, file_store), message="Active status updated")


@router.delete("/{key}", response_model=Envelope[None])
async def delete_news(
    key: str,
    _: Principal = Depends(get_admin_principal),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[None]:
    try:
        await records.delete_with_attachment(repository, file_store, NEWS, key)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(message="News deleted successfully")
