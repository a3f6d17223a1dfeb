"""
Admin authentication: bcrypt password hashes and HS256 access tokens.

`authenticate` is the single pass/fail gate; the two FastAPI dependencies wrap
it in required mode (reject on any `AuthError`) and optional mode (continue
anonymously on any `AuthError`).
"""

from __future__ import annotations

import time
from typing import Any

import bcrypt
import jwt
from fastapi import Depends, Header, HTTPException, status

from app.core.auth import AuthError, AuthErrorKind, Principal, parse_bearer_header
from app.core.config import Settings, get_settings
from app.services.repository import RecordStore, RepositoryUnavailableError, get_repository

# bcrypt only reads the first 72 bytes and newer releases reject longer input.
MAX_PASSWORD_BYTES = 72


def hash_password(plain_password: str, *, rounds: int = 12) -> str:
    password = (plain_password or "").encode("utf-8")
    if not password:
        raise ValueError("Password is empty.")
    if len(password) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password is longer than {MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(password, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    password = (plain_password or "").encode("utf-8")
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


def build_access_token(*, admin_id: int, username: str, settings: Settings) -> str:
    issued_at = int(time.time())
    payload = {
        "sub": str(admin_id),
        "username": username,
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + settings.access_token_expire_minutes * 60,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, *, settings: Settings) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise AuthError(AuthErrorKind.EXPIRED, "Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError(AuthErrorKind.INVALID, "Invalid token") from exc

    if str(payload.get("type") or "").lower() != "access":
        raise AuthError(AuthErrorKind.INVALID, "Invalid token")
    return payload


async def authenticate(
    authorization: str | None,
    *,
    repository: RecordStore,
    settings: Settings,
) -> Principal:
    token = parse_bearer_header(authorization)
    payload = decode_access_token(token, settings=settings)

    subject = str(payload.get("sub") or "").strip()
    if not subject.isdigit():
        raise AuthError(AuthErrorKind.INVALID, "Invalid token")

    admin = await repository.get_admin_by_id(int(subject))
    if admin is None or admin["username"] != payload.get("username"):
        raise AuthError(AuthErrorKind.INVALID, "Invalid token")

    return Principal(admin_id=int(admin["id"]), username=str(admin["username"]), email=admin.get("email"))


async def get_admin_principal(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    try:
        return await authenticate(authorization, repository=repository, settings=settings)
    except AuthError as exc:
        status_code = (
            status.HTTP_401_UNAUTHORIZED
            if exc.kind is AuthErrorKind.MISSING_TOKEN
            else status.HTTP_403_FORBIDDEN
        )
        raise HTTPException(status_code=status_code, detail=exc.message) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


async def get_optional_principal(
    settings: Settings = Depends(get_settings),
    repository=Depends(get_repository),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal | None:
    if not authorization:
        return None
    try:
        return await authenticate(authorization, repository=repository, settings=settings)
    except AuthError:
        return None
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
