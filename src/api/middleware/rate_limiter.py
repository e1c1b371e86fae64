"""Rate limiting using SlowAPI.

This module provides:
- Per-API-key (or client IP) rate limiting
- Per-minute limits by subscription tier
- Redis-backed distributed rate limiting
- Graceful degradation to in-memory storage

Limits are checked by the ``enforce_rate_limit`` dependency on the API
routers, after the API key has been resolved to a tier.

Usage:
    # In app.py
    from src.api.middleware.rate_limiter import setup_rate_limiter

    app = FastAPI()
    setup_rate_limiter(app)

    # In a router
    router = APIRouter(dependencies=[Depends(enforce_rate_limit)])
"""

import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from limits import RateLimitItem, parse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from slowapi.wrappers import Limit

from src.api.security import APIKeyContext, hash_api_key, validate_api_key
from src.core.config import get_settings
from src.database.redis import get_redis_manager

logger = logging.getLogger(__name__)

RATE_LIMIT_SCOPE = "api"
DEFAULT_REQUESTS_PER_MINUTE = 10


def get_rate_limit_key(request: Request) -> str:
    """Extract rate limit key from request.

    Uses the API key hash if a key is sent, otherwise the client IP address.
    """
    api_key_header = request.headers.get("X-API-Key")
    if api_key_header:
        return f"apikey:{hash_api_key(api_key_header)[:16]}"

    return f"ip:{get_remote_address(request)}"


def get_tier_limit(tier: str) -> RateLimitItem:
    """Per-minute limit for a subscription tier.

    Tiers missing from ``rate_limit_tiers`` get the default tier's limit.
    """
    settings = get_settings()
    tiers = settings.rate_limit_tiers
    per_minute = tiers.get(tier, tiers.get(settings.auth_default_tier, DEFAULT_REQUESTS_PER_MINUTE))
    return parse(f"{per_minute}/minute")


def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Handle rate limit exceeded errors.

    Returns 429 response with proper headers.
    """
    retry_after = 60  # Default

    logger.warning(
        "Rate limit exceeded",
        extra={
            "key": get_rate_limit_key(request),
            "path": request.url.path,
            "limit": str(exc.detail),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "RATE_LIMIT_EXCEEDED",
            "error_code": "RATE_LIMIT_EXCEEDED",
            "message": "Too many requests. Please slow down.",
            "details": {
                "limit": str(exc.detail),
                "retry_after_seconds": retry_after,
            },
            "request_id": getattr(request.state, "request_id", None),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        headers={
            "Retry-After": str(retry_after),
        },
    )


async def enforce_rate_limit(
    request: Request,
    auth: APIKeyContext = Depends(validate_api_key),
) -> None:
    """Dependency counting a request against the caller's tier limit.

    Raises:
        RateLimitExceeded: If the caller is over its per-minute limit
    """
    limiter: Limiter | None = getattr(request.app.state, "limiter", None)
    if limiter is None or not limiter.enabled:
        return

    item = get_tier_limit(auth.tier.value)
    key = get_rate_limit_key(request)
    if not limiter.limiter.hit(item, RATE_LIMIT_SCOPE, key):
        raise RateLimitExceeded(
            Limit(item, get_rate_limit_key, RATE_LIMIT_SCOPE, False, None, None, None, 1, False)
        )


def get_limiter() -> Limiter:
    """Create the rate limiter instance.

    Returns:
        Configured Limiter instance
    """
    settings = get_settings()

    if not settings.rate_limit_enabled:
        # Return disabled limiter
        return Limiter(
            key_func=get_remote_address,
            default_limits=[],
            enabled=False,
        )

    # Determine storage backend
    storage_uri = None
    if settings.rate_limit_storage == "redis":
        redis_manager = get_redis_manager()
        if redis_manager.is_available:
            storage_uri = settings.redis_url

    return Limiter(
        key_func=get_rate_limit_key,
        storage_uri=storage_uri or "memory://",
        headers_enabled=False,
        enabled=True,
    )


def setup_rate_limiter(app: FastAPI) -> Limiter:
    """Set up rate limiting.

    Args:
        app: FastAPI application

    Returns:
        Configured Limiter instance
    """
    settings = get_settings()
    limiter = get_limiter()
    app.state.limiter = limiter

    if not settings.rate_limit_enabled:
        logger.info("Rate limiting is disabled")
        return limiter

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    logger.info(
        "Rate limiting enabled",
        extra={
            "storage": settings.rate_limit_storage,
            "tiers": settings.rate_limit_tiers,
        },
    )

    return limiter
