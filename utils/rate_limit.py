"""
Rate Limiting Middleware

Provides request rate limiting using Redis (production) or in-memory (development).
Uses slowapi for FastAPI-compatible rate limiting.

Usage:
    from utils.rate_limit import limiter, rate_limit_exceeded_handler

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from config.settings import settings
from utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Rate Limiter Configuration
# =============================================================================

def get_client_key(request: Request) -> str:
    """
    Rate limit key for a request.

    Uses the upstream user id when present, so users behind one proxy do not
    share a bucket. Falls back to the client IP, honoring X-Forwarded-For.
    """
    user_id = request.headers.get("X-User-Id")
    if user_id:
        return f"user:{user_id}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def _get_storage_uri() -> str:
    """Use Redis if configured, otherwise in-memory storage."""
    if settings.REDIS_URL:
        logger.info("Rate limiter using Redis storage")
        return settings.REDIS_URL
    logger.info("Rate limiter using in-memory storage")
    return "memory://"


limiter = Limiter(
    key_func=get_client_key,
    default_limits=["200/minute"],
    storage_uri=_get_storage_uri(),
)


# =============================================================================
# Rate Limit Presets
# =============================================================================

RATE_LIMITS = {
    "ingest": "30/minute",     # OCR/definition/TTS fan-out per request
    "review": "120/minute",    # Answer submission
    "default": "200/minute",
}


# =============================================================================
# Exception Handler
# =============================================================================

async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded
) -> JSONResponse:
    """Handle rate limit exceeded exceptions."""
    client_key = get_client_key(request)
    logger.warning(f"Rate limit exceeded for {client_key} on {request.url.path}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitExceeded",
            "message": f"Too many requests. Limit: {exc.detail}",
            "retry_after": "60 seconds"
        },
        headers={"Retry-After": "60"}
    )


# =============================================================================
# Decorator Helpers
# =============================================================================

def limit_ingest(func):
    """Apply ingestion rate limit."""
    return limiter.limit(RATE_LIMITS["ingest"])(func)


def limit_review(func):
    """Apply review rate limit."""
    return limiter.limit(RATE_LIMITS["review"])(func)
