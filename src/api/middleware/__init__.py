"""Middleware module for the API.

This module provides middleware components for:
- Error handling and standardization
- Request/response logging
- Request ID tracking
- Rate limiting
- Prometheus metrics
"""

from src.api.middleware.error_handler import ErrorHandlerMiddleware, setup_error_handler
from src.api.middleware.logging import LoggingMiddleware, setup_logging_middleware
from src.api.middleware.prometheus import (
    PrometheusMiddleware,
    record_analysis,
    record_video_lookup,
    setup_prometheus,
)
from src.api.middleware.rate_limiter import enforce_rate_limit, get_limiter, setup_rate_limiter

__all__ = [
    "ErrorHandlerMiddleware",
    "setup_error_handler",
    "LoggingMiddleware",
    "setup_logging_middleware",
    "PrometheusMiddleware",
    "setup_prometheus",
    "setup_rate_limiter",
    "get_limiter",
    "enforce_rate_limit",
    # Metrics helpers
    "record_analysis",
    "record_video_lookup",
]
