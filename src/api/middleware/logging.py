"""Request logging middleware.

Every request gets an ``X-Request-ID`` (taken from the caller when present)
that error responses and log records share. Health probes and the metrics
scrape are logged at DEBUG so they do not drown out API traffic.
"""

import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

QUIET_PATH_PREFIXES = ("/health", "/metrics")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Assigns request IDs and logs each request with its outcome and timing."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        path = request.url.path
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "client_ip": request.client.host if request.client else "unknown",
        }
        quiet = path.startswith(QUIET_PATH_PREFIXES)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "Request failed",
                extra={
                    **context,
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id

        if quiet:
            log_level = logging.DEBUG
        elif response.status_code >= 500:
            log_level = logging.ERROR
        elif response.status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            f"{request.method} {path} -> {response.status_code}",
            extra={
                **context,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
        return response


def setup_logging_middleware(app: FastAPI) -> None:
    """Attach ``LoggingMiddleware`` to the application."""
    app.add_middleware(LoggingMiddleware)
    logger.info("Logging middleware initialized")
