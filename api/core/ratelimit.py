"""Rate limiting configuration using slowapi.

Production deployments with more than one worker must set
RATELIMIT_STORAGE_URI to a Redis URL; memory:// keeps a separate counter
per process.
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)

settings = get_settings()

if (
    settings.environment != "development"
    and settings.ratelimit_storage_uri == "memory://"
):
    logger.warning(
        "ratelimit.memory_storage",
        environment=settings.environment,
        hint="Set RATELIMIT_STORAGE_URI to a Redis URL for multiple replicas",
    )


def _get_request_identifier(request: Request) -> str:
    """Rate limit per user when the path names one, otherwise per IP.

    Check-in spam for a single user is throttled even when it arrives
    through several bot instances.
    """
    user_id = request.path_params.get("user_id")
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


_using_redis = settings.ratelimit_storage_uri.startswith("redis://")

limiter = Limiter(
    key_func=_get_request_identifier,
    default_limits=["100/minute"],
    storage_uri=settings.ratelimit_storage_uri,
    in_memory_fallback_enabled=_using_redis,
    key_prefix="waddle:",
)


def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    """Custom handler for rate limit exceeded errors."""
    if not isinstance(exc, RateLimitExceeded):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    logger.warning(
        "ratelimit.exceeded",
        identifier=_get_request_identifier(request),
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "retry_after": exc.detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


READ_LIMIT = "60/minute"

WRITE_LIMIT = "20/minute"
