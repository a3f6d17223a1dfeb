import logging

from fastapi import APIRouter, Depends, HTTPException, status
from starlette.concurrency import run_in_threadpool

from app.api.errors import DOMAIN_ERRORS, http_error
from app.core.auth import Principal
from app.core.config import Settings, get_settings
from app.core.security import build_access_token, get_admin_principal, hash_password, verify_password
from app.schemas.auth import AdminOut, ChangePasswordRequest, LoginOut, LoginRequest
from app.schemas.common import Envelope
from app.services.repository import RepositoryNotFoundError, get_repository

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/admin/login", response_model=Envelope[LoginOut])
async def admin_login(
    payload: LoginRequest,
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> Envelope[LoginOut]:
    try:
        admin = await repository.get_admin_by_username(payload.username)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc

    if admin is None or not await run_in_threadpool(verify_password, payload.password, admin["password_hash"]):
        logger.info("admin login rejected username=%s", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = build_access_token(admin_id=int(admin["id"]), username=admin["username"], settings=settings)
    logger.info("admin login accepted admin_id=%s", admin["id"])
    return Envelope(
        data=LoginOut(
            token=token,
            admin=AdminOut(id=admin["id"], username=admin["username"], email=admin.get("email")),
        ),
        message="Login successful",
    )


@router.get("/profile", response_model=Envelope[AdminOut])
async def admin_profile(
    principal: Principal = Depends(get_admin_principal),
) -> Envelope[AdminOut]:
    return Envelope(data=AdminOut(id=principal.admin_id, username=principal.username, email=principal.email))


@router.put("/change-password", response_model=Envelope[None])
async def change_password(
    payload: ChangePasswordRequest,
    principal: Principal = Depends(get_admin_principal),
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
) -> Envelope[None]:
    try:
        admin = await repository.get_admin_by_id(principal.admin_id)
        if admin is None:
            raise RepositoryNotFoundError("Admin not found")
        if not await run_in_threadpool(verify_password, payload.current_password, admin["password_hash"]):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
        password_hash = await run_in_threadpool(
            hash_password,
            payload.new_password,
            rounds=settings.password_hash_rounds,
        )
        await repository.update_admin_password(principal.admin_id, password_hash)
    except DOMAIN_ERRORS as exc:
        raise http_error(exc) from exc
    logger.info("admin password changed admin_id=%s", principal.admin_id)
    return Envelope(message="Password changed successfully")
