"""Health check endpoints for monitoring and observability.

This module provides comprehensive health endpoints:
- GET /health - Basic liveness probe
- GET /health/ready - Readiness probe (checks dependencies)
- GET /health/live - Liveness probe (always returns 200 if running)
- GET /health/detailed - Detailed status with component health

Usage:
    # Include in app.py
    from src.api.routers import health_router
    app.include_router(health_router)
"""

import logging
import platform
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from src.core.config import get_settings
from src.core.constants import APP_VERSION, START_TIME
from src.database.redis import get_redis_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def get_version_info() -> dict[str, str]:
    """Get application version information."""
    return {
        "version": APP_VERSION,
        "python_version": platform.python_version(),
    }


async def check_database_health(request: Request) -> dict[str, Any]:
    """Check MongoDB health through the service's store.

    Returns:
        Health status dictionary
    """
    result: dict[str, Any] = {
        "status": "unhealthy",
        "latency_ms": 0,
        "available": False,
    }

    service = getattr(request.app.state, "analysis_service", None)
    if service is None:
        result["error"] = "Service not initialized"
        return result

    try:
        start = time.perf_counter()
        await service.store.ping()
        latency = (time.perf_counter() - start) * 1000

        result["status"] = "healthy"
        result["latency_ms"] = round(latency, 2)
        result["available"] = True

    except (PyMongoError, OSError) as e:
        result["error"] = str(e)
        logger.warning("Database health check failed: %s", e)

    return result


async def check_redis_health() -> dict[str, Any]:
    """Check Redis health."""
    return await get_redis_manager().health_check()


async def _collect_components(request: Request) -> dict[str, Any]:
    settings = get_settings()
    components: dict[str, Any] = {
        "api": {"status": "healthy", "latency_ms": 1},
        "database": await check_database_health(request),
    }

    # Redis only backs locks and rate limits, so it is optional
    if settings.redis_enabled:
        components["redis"] = await check_redis_health()

    return components


@router.get(
    "/health",
    response_model=dict[str, Any],
    summary="Basic health check",
    description="Quick health check for load balancers. Returns 200 if API is responding.",
    operation_id="health_check",
    responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "timestamp": "2024-01-01T00:00:00Z",
                    }
                }
            },
        }
    },
)
async def health_check() -> JSONResponse:
    """Basic health check endpoint.

    Returns 200 if the API is responding. Does not check dependencies.
    """
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "version": APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get(
    "/health/live",
    response_model=dict[str, Any],
    summary="Liveness probe",
    description="Kubernetes liveness probe. Returns 200 if process is running.",
    operation_id="liveness_probe",
)
async def liveness_probe() -> JSONResponse:
    """Liveness probe endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "alive",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get(
    "/health/ready",
    response_model=dict[str, Any],
    summary="Readiness probe",
    description="Kubernetes readiness probe. Ready when MongoDB answers.",
    operation_id="readiness_probe",
    responses={
        200: {"description": "Service is ready"},
        503: {"description": "Service is not ready"},
    },
)
async def readiness_probe(request: Request) -> JSONResponse:
    """Readiness probe endpoint.

    MongoDB is required. An unavailable Redis only degrades the service,
    since locks and rate limits fall back to in-process state.
    """
    components = await _collect_components(request)

    if not components["database"]["available"]:
        overall_status = "unhealthy"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif all(comp.get("status") in ("healthy", "disabled") for comp in components.values()):
        overall_status = "healthy"
        status_code = status.HTTP_200_OK
    else:
        overall_status = "degraded"
        status_code = status.HTTP_200_OK

    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall_status,
            "version": APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": components,
        },
    )


@router.get(
    "/health/detailed",
    response_model=dict[str, Any],
    summary="Detailed health check",
    description="Comprehensive health check with all component details.",
    operation_id="detailed_health_check",
)
async def detailed_health_check(request: Request) -> JSONResponse:
    """Detailed health check endpoint for dashboards and debugging."""
    settings = get_settings()
    components = await _collect_components(request)

    statuses = [comp.get("status") for comp in components.values()]
    if all(s in ("healthy", "disabled") for s in statuses):
        overall_status = "healthy"
    elif components["database"]["status"] == "unhealthy":
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    uptime = (datetime.now(timezone.utc) - START_TIME).total_seconds()

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": overall_status,
            **get_version_info(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": components,
            "uptime_seconds": round(uptime, 2),
            "environment": {
                "llm_model": settings.llm_model,
                "redis_enabled": settings.redis_enabled,
                "rate_limit_enabled": settings.rate_limit_enabled,
                "prometheus_enabled": settings.prometheus_enabled,
            },
        },
    )
