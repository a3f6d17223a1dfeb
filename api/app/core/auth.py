from dataclasses import dataclass
from enum import Enum


class AuthErrorKind(str, Enum):
    MISSING_TOKEN = "missing_token"
    EXPIRED = "expired"
    INVALID = "invalid"


class AuthError(Exception):
    def __init__(self, kind: AuthErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(slots=True)
class Principal:
    admin_id: int
    username: str
    email: str | None = None


def parse_bearer_header(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise AuthError(AuthErrorKind.MISSING_TOKEN, "Access token required")

    scheme, _, token = raw.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer":
        raise AuthError(AuthErrorKind.INVALID, "Authorization must be: Bearer <token>")
    if not token:
        raise AuthError(AuthErrorKind.MISSING_TOKEN, "Access token required")
    return token
