from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.errors import DOMAIN_ERRORS, http_error
from app.core.auth import Principal
from app.core.config import Settings, get_settings
from app.core.security import get_admin_principal, get_optional_principal
from app.schemas.common import Envelope, Page, Pagination
from app.schemas.jobs import JobCreateRequest, JobOut, JobStatsOut, JobType, JobUpdateRequest
from app.services import records
from app.services.entities import JOB_TYPES, JOBS
from app.services.repository import get_repository

router = APIRouter()

REQUIRED_FIELDS = {"title", "company", "job_type", "last_date", "is_active"}


@router.get("", response_model=Envelope[Page[JobOut]])
async def list_jobs(
    job_type: JobType | None = Query(default=None, alias="type"),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal | None = Depends(get_optional_principal),
    repository=Depends(get_repository),
) -> Envelope[Page[JobOut]]:
    try:
        rows, total = await repository.list_records(
            JOBS.kind,
            equals={"job_type": job_type},
            search=search,
            include_inactive=principal is not None,
            limit=limit,
            offset=(page - 1) * limit,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(
        data=Page(
            items=[JobOut(**row) for row in rows],
            pagination=Pagination.build(page=page, limit=limit, total=total),
        )
    )


@router.get("/stats", response_model=Envelope[JobStatsOut])
async def get_job_stats(repository=Depends(get_repository)) -> Envelope[JobStatsOut]:
    try:
        counts = await repository.count_by(JOBS.kind, "job_type")
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    by_type = {job_type: counts.get(job_type, 0) for job_type in JOB_TYPES}
    return Envelope(data=JobStatsOut(**by_type, total=sum(counts.values())))


@router.get("/{key}", response_model=Envelope[JobOut])
async def get_job(
    key: str,
    principal: Principal | None = Depends(get_optional_principal),
    repository=Depends(get_repository),
) -> Envelope[JobOut]:
    try:
        row = await records.require_record(repository, JOBS, key, include_inactive=principal is not None)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=JobOut(**row))


@router.post("", response_model=Envelope[JobOut], status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreateRequest,
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> Envelope[JobOut]:
    try:
        row = await records.create_record(
            repository,
            JOBS,
            payload.model_dump(),
            max_candidates=settings.slug_max_candidates,
            write_attempts=settings.slug_write_attempts,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=JobOut(**row), message="Job created successfully")


@router.put("/{key}", response_model=Envelope[JobOut])
async def update_job(
    key: str,
    payload: JobUpdateRequest,
    _: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> Envelope[JobOut]:
    changes = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field not in REQUIRED_FIELDS
    }
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    try:
        existing = await records.require_record(repository, JOBS, key)
        row = await records.update_record(
            repository,
            JOBS,
            existing,
            changes,
            max_candidates=settings.slug_max_candidates,
            write_attempts=settings.slug_write_attempts,
        )
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(data=JobOut(**row), message="Job updated successfully")


@router.delete("/{key}", response_model=Envelope[None])
async def delete_job(
    key: str,
    _: Principal = Depends(get_admin_principal),
    repository=Depends(get_repository),
) -> Envelope[None]:
    try:
        await records.delete_with_attachment(repository, None, JOBS, key)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    return Envelope(message="Job deleted successfully")
