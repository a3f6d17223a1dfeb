from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse

from app.api.downloads import attachment_response
from app.api.errors import DOMAIN_ERRORS, http_error
from app.core.auth import Principal
from app.core.config import Settings, get_settings
from app.core.security import get_admin_principal, get_optional_principal
from app.schemas.common import Envelope, Page, Pagination
from app.schemas.study_materials import StudyMaterialOut
from app.services import records
from app.services.entities import STUDY_MATERIALS
from app.services.files import FileStore, document_constraints, get_file_store
from app.services.repository import RepositoryValidationError, get_repository

router = APIRouter()


@router.get("", response_model=Envelope[Page[StudyMaterialOut]])
async def list_study_materials(
    post_name: str | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal | None = Depends(get_optional_principal),
    repository=Depends(get_repository),
) -> Envelope[Page[StudyMaterialOut]]:
    try:
        rows, total = await repository.list_records(
            STUDY_MATERIALS.kind,
            contains={"post_name": post_name} if post_name else None,
            search=search,
            include_inactive=principal is not None,
            limit=limit,
            offset=(page - 1) * limit,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(
        data=Page(
            items=[StudyMaterialOut(**row) for row in rows],
            pagination=Pagination.build(page=page, limit=limit, total=total),
        )
    )


@router.get("/posts", response_model=Envelope[list[str]])
async def list_post_names(repository=Depends(get_repository)) -> Envelope[list[str]]:
    try:
        post_names = await repository.list_distinct(STUDY_MATERIALS.kind, "post_name")
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=post_names)


@router.get("/{material_id}", response_model=Envelope[StudyMaterialOut])
async def get_study_material(
    material_id: str,
    principal: Principal | None = Depends(get_optional_principal),
    repository=Depends(get_repository),
) -> Envelope[StudyMaterialOut]:
    try:
        row = await records.require_record(
            repository,
            STUDY_MATERIALS,
            material_id,
            include_inactive=principal is not None,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=StudyMaterialOut(**row))


@router.get("/{material_id}/download")
async def download_study_material(
    material_id: str,
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> FileResponse:
    return await attachment_response(repository, file_store, STUDY_MATERIALS, material_id)


@router.post("", response_model=Envelope[StudyMaterialOut], status_code=status.HTTP_201_CREATED)
async def create_study_material(
    post_name: str = Form(..., min_length=1, max_length=255),
    title: str = Form(..., min_length=1, max_length=500),
    description: str | None = Form(default=None),
    file: UploadFile = File(...),
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[StudyMaterialOut]:
    fields = {"post_name": post_name, "title": title, "description": description}
    try:
        stored = await file_store.save(
            file,
            document_constraints(settings),
            subdir="study-materials",
            prefix="material",
        )
        row = await records.create_with_attachment(repository, file_store, STUDY_MATERIALS, fields, stored)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=StudyMaterialOut(**row), message="Study material uploaded successfully")


@router.put("/{material_id}", response_model=Envelope[StudyMaterialOut])
async def update_study_material(
    material_id: str,
    post_name: str | None = Form(default=None, min_length=1, max_length=255),
    title: str | None = Form(default=None, min_length=1, max_length=500),
    description: str | None = Form(default=None),
    is_active: bool | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[StudyMaterialOut]:
    submitted = {"post_name": post_name, "title": title, "description": description, "is_active": is_active}
    changes = {field: value for field, value in submitted.items() if value is not None}
    try:
        stored = None
        if file is not None and file.filename:
            stored = await file_store.save(
                file,
                document_constraints(settings),
                subdir="study-materials",
                prefix="material",
            )
        if not changes and stored is None:
            raise RepositoryValidationError("No fields to update")
        row = await records.update_with_attachment(
            repository,
            file_store,
            STUDY_MATERIALS,
            material_id,
            changes,
            stored,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=StudyMaterialOut(**row), message="Study material updated successfully")


@router.delete("/{material_id}", response_model=Envelope[None])
async def delete_study_material(
    material_id: str,
    _: Principal = Depends(get_admin_principal),
    repository=Depends(get_repository),
    file_store: FileStore = Depends(get_file_store),
) -> Envelope[None]:
    try:
        await records.delete_with_attachment(repository, file_store, STUDY_MATERIALS, material_id)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(message="Study material deleted successfully")
