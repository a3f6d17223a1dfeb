"""
Per-client request limiting and hardening response headers.

The limiter keys on the client address and applies one default limit to every
route; the limit string is read from settings on each check, so
`EP_RATE_LIMIT` changes take effect once the settings cache is cleared.
"""

import logging

from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core.config import get_settings
from app.schemas.common import ErrorOut

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'self'; object-src 'none'",
    "Cross-Origin-Opener-Policy": "same-origin",
    # Uploaded images are embedded by the frontend from another origin.
    "Cross-Origin-Resource-Policy": "cross-origin",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Frame-Options": "SAMEORIGIN",
}


def _default_limit() -> str:
    return get_settings().effective_rate_limit


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[_default_limit],
    enabled=get_settings().rate_limit_enabled,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        "rate limit exceeded client=%s path=%s limit=%s",
        get_remote_address(request),
        request.url.path,
        exc.detail,
    )
    return JSONResponse(
        status_code=429,
        content=ErrorOut(error=RATE_LIMIT_MESSAGE).model_dump(exclude={"errors"}),
    )
