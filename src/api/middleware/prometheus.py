"""Prometheus metrics middleware and instrumentation.

This module provides:
- Custom metrics for video ingestion and comment analysis
- API request metrics
- /metrics endpoint for Prometheus scraping

Usage:
    # In app.py
    from src.api.middleware.prometheus import setup_prometheus

    app = FastAPI()
    setup_prometheus(app)
"""

import logging
import re
import time
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse

from src.core.config import get_settings
from src.core.constants import APP_VERSION

logger = logging.getLogger(__name__)


# Custom Metrics

# Video lookup metrics
video_lookups_total = Counter(
    "video_lookups_total",
    "Total number of video lookups",
    ["result"],  # served, not_found, over_limit, failed
)

comments_returned_total = Counter(
    "comments_returned_total",
    "Total number of comments returned by video lookups",
)

# Analysis metrics
analysis_requests_total = Counter(
    "analysis_requests_total",
    "Total number of summarize requests",
    ["outcome"],  # cache_hit, generated, no_comments, failed
)

analysis_duration_seconds = Histogram(
    "analysis_duration_seconds",
    "Time spent serving summarize requests",
    ["outcome"],
    buckets=(0.05, 0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, float("inf")),
)

# API request metrics
api_requests_total = Counter(
    "api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status"],
)

api_request_duration_seconds = Histogram(
    "api_request_duration_seconds",
    "API request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, float("inf")),
)

# System metrics
app_info = Gauge(
    "app_info",
    "Application information",
    ["version"],
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus metrics for API requests."""

    def __init__(self, app: Any, metrics_path: str = "/metrics") -> None:
        super().__init__(app)
        self.metrics_path = metrics_path

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint
        if request.url.path == self.metrics_path:
            return await call_next(request)

        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration = time.perf_counter() - start_time

            endpoint = self._normalize_endpoint(request.url.path)
            method = request.method

            api_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=status_code,
            ).inc()

            api_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint,
            ).observe(duration)

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path for metrics (remove IDs)."""
        # Share IDs
        path = re.sub(r"(/shared/analysis)/[^/]+", r"\1/{share_id}", path)

        # Replace numeric IDs
        path = re.sub(r"/\d+", "/{id}", path)

        return path


def setup_prometheus(app: FastAPI) -> None:
    """Set up Prometheus metrics and endpoint.

    Args:
        app: FastAPI application
    """
    settings = get_settings()

    if not settings.prometheus_enabled:
        logger.info("Prometheus metrics disabled")
        return

    app_info.labels(version=APP_VERSION).set(1)

    app.add_middleware(PrometheusMiddleware, metrics_path=settings.prometheus_path)

    @app.get(settings.prometheus_path, include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        return StarletteResponse(
            content=generate_latest(REGISTRY),
            status_code=200,
            media_type=CONTENT_TYPE_LATEST,
        )

    logger.info(
        "Prometheus metrics enabled",
        extra={"path": settings.prometheus_path},
    )


# Helper functions for recording metrics


def record_video_lookup(result: str, comment_count: int = 0) -> None:
    """Record a video lookup.

    Args:
        result: served, not_found, over_limit or failed
        comment_count: Comments returned with the video
    """
    video_lookups_total.labels(result=result).inc()
    if comment_count:
        comments_returned_total.inc(comment_count)


def record_analysis(outcome: str, duration_seconds: float) -> None:
    """Record a summarize request.

    Args:
        outcome: cache_hit, generated, no_comments or failed
        duration_seconds: Time spent serving the request
    """
    analysis_requests_total.labels(outcome=outcome).inc()
    analysis_duration_seconds.labels(outcome=outcome).observe(duration_seconds)


__all__ = [
    "setup_prometheus",
    "PrometheusMiddleware",
    "record_video_lookup",
    "record_analysis",
    # Export metrics for external use
    "video_lookups_total",
    "comments_returned_total",
    "analysis_requests_total",
    "analysis_duration_seconds",
    "api_requests_total",
    "api_request_duration_seconds",
    "app_info",
]
