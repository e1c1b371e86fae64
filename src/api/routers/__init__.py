"""API routers module."""

from src.api.routers.health import router as health_router
from src.api.routers.premium import router as premium_router
from src.api.routers.shared import router as shared_router
from src.api.routers.youtube import router as youtube_router

__all__ = [
    "youtube_router",
    "shared_router",
    "premium_router",
    "health_router",
]
