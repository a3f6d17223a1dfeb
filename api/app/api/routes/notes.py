from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse

from app.api.downloads import attachment_response
from app.api.errors import DOMAIN_ERRORS, http_error
from app.core.auth import Principal
from app.core.config import Settings, get_settings
from app.core.security import get_admin_principal, get_optional_principal
from app.schemas.common import Envelope, Page, Pagination
from app.schemas.notes import ClassLevel, NoteOut
from app.services import records
from app.services.entities import NOTES
from app.services.files import FileStore, document_constraints, get_file_store
from app.services.repository import RepositoryValidationError, get_repository

router = APIRouter()


@router.get("", response_model=Envelope[Page[NoteOut]])
async def list_notes(
    class_level: ClassLevel | None = Query(default=None),
    subject: str | None = Query(default=None, min_length=1),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    principal: Principal | None = Depends(get_optional_principal),
    repository=Depends(get_repository),
) -> Envelope[Page[NoteOut]]:
    try:
        rows, total = await repository.list_records(
            NOTES.kind,
            equals={"class_level": class_level, "subject": subject},
            search=search,
            include_inactive=principal is not None,
            limit=limit,
            offset=(page - 1) * limit,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(
        data=Page(
            items=[NoteOut(**row) for row in rows],
            pagination=Pagination.build(page=page, limit=limit, total=total),
        )
    )


@router.get("/subjects", response_model=Envelope[list[str]])
async def list_subjects(repository=Depends(get_repository)) -> Envelope[list[str]]:
    try:
        subjects = await repository.list_distinct(NOTES.kind, "subject")
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=subjects)


@router.get("/{key}", response_model=Envelope[NoteOut])
async def get_note(
    key: str,
    principal: Principal | None = Depends(get_optional_principal),
    repository=Depends(get_repository),
) -> Envelope[NoteOut]:
    try:
        row = await records.require_record(repository, NOTES, key, include_inactive=principal is not None)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=NoteOut(**row))


@router.get("/{key}/download")
async def download_note(
    key: str,
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> FileResponse:
    return await attachment_response(repository, file_store, NOTES, key)


@router.post("", response_model=Envelope[NoteOut], status_code=status.HTTP_201_CREATED)
async def create_note(
    title: str = Form(..., min_length=1, max_length=500),
    subject: str = Form(..., min_length=1, max_length=255),
    class_level: ClassLevel = Form(...),
    description: str = Form(default=""),
    author: str = Form(default="Unknown"),
    file: UploadFile = File(...),
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[NoteOut]:
    fields = {
        "title": title,
        "subject": subject,
        "class_level": class_level,
        "description": description,
        "author": author or "Unknown",
    }
    try:
        stored = await file_store.save(file, document_constraints(settings), subdir="notes", prefix="note")
        row = await records.create_with_attachment(
            repository,
            file_store,
            NOTES,
            fields,
            stored,
            max_candidates=settings.slug_max_candidates,
            write_attempts=settings.slug_write_attempts,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=NoteOut(**row), message="Note created successfully")


@router.put("/{key}", response_model=Envelope[NoteOut])
async def update_note(
    key: str,
    title: str | None = Form(default=None, min_length=1, max_length=500),
    subject: str | None = Form(default=None, min_length=1, max_length=255),
    class_level: ClassLevel | None = Form(default=None),
    description: str | None = Form(default=None),
    author: str | None = Form(default=None),
    is_active: bool | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[NoteOut]:
    submitted = {
        "title": title,
        "subject": subject,
        "class_level": class_level,
        "description": description,
        "author": author,
        "is_active": is_active,
    }
    changes = {field: value for field, value in submitted.items() if value is not None}
    try:
        stored = None
        if file is not None and file.filename:
            stored = await file_store.save(file, document_constraints(settings), subdir="notes", prefix="note")
        if not changes and stored is None:
            raise RepositoryValidationError("No fields to update")
        row = await records.update_with_attachment(
            repository,
            file_store,
            NOTES,
            key,
            changes,
            stored,
            max_candidates=settings.slug_max_candidates,
            write_attempts=settings.slug_write_attempts,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=NoteOut(**row), message="Note updated successfully")


@router.delete("/{key}", response_model=Envelope[None])
async def delete_note(
    key: str,
    _: Principal = Depends(get_admin_principal),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[None]:
    try:
        await records.delete_with_attachment(repository, file_store, NOTES, key)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(message="Note deleted successfully")
