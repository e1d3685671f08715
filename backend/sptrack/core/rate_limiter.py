"""
Rate Limiting for the Student Performance Tracking API
======================================================
Brute-force protection for the credential endpoints using slowapi.

- login endpoints: LOGIN_RATE_LIMIT (default 5/minute)
- registration endpoints: REGISTER_RATE_LIMIT (default 3/minute)

Storage defaults to in-process memory; point RATE_LIMIT_STORAGE_URI at a
shared backend when running more than one worker.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from sptrack.core.config import settings
from sptrack.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """Rate limit key: the client address (callers are anonymous at login)"""
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Render rate limit errors in the API's error envelope with a Retry-After header"""
    retry_after = exc.detail.split(":")[-1].strip() if exc.detail else "60"

    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}",
        extra={"event_type": "rate_limit", "http_path": request.url.path}
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": "Too many requests. Please slow down.",
                "details": {"limit": str(exc.detail)},
            },
        },
        headers={"Retry-After": retry_after if retry_after.isdigit() else "60"},
    )


def login_rate_limit():
    """Rate limit for login endpoints"""
    return limiter.limit(settings.LOGIN_RATE_LIMIT)


def register_rate_limit():
    """Rate limit for registration endpoints"""
    return limiter.limit(settings.REGISTER_RATE_LIMIT)
