"""Main FastAPI application with enhanced OpenAPI schema.

This module creates the FastAPI application with:
- Custom OpenAPI schema with the API key security scheme
- Middleware for error handling and logging
- Health check endpoints
- Redis integration (ingestion locks, rate limit storage)
- Rate limiting
- Prometheus metrics
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware import (
    setup_error_handler,
    setup_logging_middleware,
    setup_prometheus,
    setup_rate_limiter,
)
from src.api.routers import health_router, premium_router, shared_router, youtube_router
from src.core.config import get_settings, get_settings_with_yaml
from src.core.constants import (
    API_PREFIX,
    API_TAGS,
    APP_DESCRIPTION,
    APP_NAME,
    APP_VERSION,
    LICENSE_INFO,
    OPENAPI_TITLE,
    OPENAPI_VERSION,
)
from src.database.redis import close_redis
from src.pipeline.analysis import CommentAnalysisService, build_analysis_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the analysis service (MongoDB indexes, Redis, YouTube and LLM
    clients) on startup and releases it on shutdown. A service passed to
    ``create_app`` is used as-is and left for the caller to close.
    """
    logger.info("Starting %s v%s", APP_NAME, APP_VERSION)

    if getattr(app.state, "analysis_service", None) is not None:
        yield
        return

    settings = get_settings_with_yaml()
    try:
        service = await build_analysis_service(settings)
    except Exception as e:
        logger.exception("Startup failed: %s", e)
        raise

    app.state.analysis_service = service
    logger.info("Analysis service ready (model=%s)", settings.llm_model)

    try:
        yield
    finally:
        logger.info("Shutting down %s", APP_NAME)

        await service.close()
        logger.info("Database connection closed")

        if settings.redis_enabled:
            await close_redis()
            logger.info("Redis connection closed")

        app.state.analysis_service = None


def create_openapi_schema(
    app_instance: FastAPI | None = None,
    original_openapi: Any = None,
) -> dict[str, Any]:
    """Create custom OpenAPI schema with enhanced documentation.

    Args:
        app_instance: Optional FastAPI instance to get paths from
        original_openapi: The original FastAPI openapi method to avoid recursion

    Returns:
        OpenAPI schema dictionary
    """
    settings = get_settings()

    schema: dict[str, Any] = {
        "openapi": "3.1.0",
        "info": {
            "title": OPENAPI_TITLE,
            "description": APP_DESCRIPTION,
            "version": OPENAPI_VERSION,
            "license": LICENSE_INFO,
        },
        "servers": [
            {
                "url": settings.share_base_url,
                "description": "Configured public server",
            },
        ],
        "tags": API_TAGS,
        "components": {
            "securitySchemes": {
                "ApiKeyAuth": {
                    "type": "apiKey",
                    "in": "header",
                    "name": "X-API-Key",
                    "description": (
                        "Optional API key. Selects the subscription tier; "
                        "requests without a key use the free tier."
                    ),
                },
            },
        },
        "security": [{"ApiKeyAuth": []}, {}],
    }

    if app_instance is not None and original_openapi is not None:
        generated = original_openapi()
        schema["paths"] = generated.get("paths", {})
        # Keep the request/response models FastAPI generated from the routers
        schema["components"]["schemas"] = generated.get("components", {}).get("schemas", {})

    return schema


def create_app(service: CommentAnalysisService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Prebuilt analysis service. When omitted the lifespan
            builds one from settings.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.analysis_service = service

    # Save original openapi method before overwriting to avoid recursion
    _original_openapi = app.openapi
    app.openapi = lambda: create_openapi_schema(app, _original_openapi)  # type: ignore[method-assign]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_logging_middleware(app)
    setup_error_handler(app)
    setup_rate_limiter(app)
    setup_prometheus(app)

    app.include_router(youtube_router, prefix=API_PREFIX)
    app.include_router(shared_router, prefix=API_PREFIX)
    app.include_router(premium_router, prefix=API_PREFIX)
    app.include_router(health_router)  # Health endpoints at root level

    logger.info("Application created successfully")
    return app


# Create application instance
app = create_app()
