"""Structured logging configuration for the comment insight service."""

import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

console = Console()

ROOT_LOGGER_NAME = "comment_insight"

# Module-level logger
logger: logging.Logger | None = None


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    rich_tracebacks: bool = True,
) -> logging.Logger:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        rich_tracebacks: Enable rich traceback formatting

    Returns:
        Configured logger instance
    """
    global logger

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=(level.upper() == "DEBUG"),
        markup=True,
    )
    rich_handler.setLevel(logging.INFO)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    # Prevent logging to root logger
    logger.propagate = False

    logger.info(f"📝 Logging initialized (level={level})")

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get or create a logger instance.

    Args:
        name: Logger name (default: comment_insight)

    Returns:
        Logger instance
    """
    global logger

    if logger is None:
        # Auto-setup with defaults if not configured
        logger = setup_logging()

    if name == ROOT_LOGGER_NAME:
        return logger

    # Child logger inherit from main logger
    child_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    child_logger.setLevel(logger.level)
    return child_logger


def log_ingestion_event(
    logger_instance: logging.Logger,
    video_id: str,
    event: str,
    comment_count: int | None = None,
    duration_seconds: float | None = None,
    error: str | None = None,
) -> None:
    """
    Log video ingestion events.

    Args:
        logger_instance: Logger to use
        video_id: YouTube video ID
        event: Event type (started, completed, failed, cached)
        comment_count: Number of comments stored
        duration_seconds: Ingestion duration
        error: Error message if failed
    """
    extra: dict[str, Any] = {
        "video_id": video_id,
        "event": event,
    }

    if comment_count is not None:
        extra["comment_count"] = comment_count
    if duration_seconds is not None:
        extra["duration_seconds"] = duration_seconds
    if error:
        extra["error"] = error

    if event == "failed":
        logger_instance.error(f"❌ Ingestion failed: {video_id} ({error})", extra=extra)
    elif event == "completed":
        logger_instance.info(
            f"✅ Ingestion complete: {video_id} ({comment_count} comments)", extra=extra
        )
    else:
        logger_instance.info(f"📥 Ingestion {event}: {video_id}", extra=extra)


def log_analysis_event(
    logger_instance: logging.Logger,
    video_id: str,
    event: str,
    comments_analyzed: int | None = None,
    duration_seconds: float | None = None,
    error: str | None = None,
) -> None:
    """
    Log analysis generation events.

    Args:
        logger_instance: Logger to use
        video_id: YouTube video ID
        event: Event type (cache_hit, generated, no_comments, failed)
        comments_analyzed: Number of comments sent to the model
        duration_seconds: Generation duration
        error: Error message if failed
    """
    extra: dict[str, Any] = {
        "video_id": video_id,
        "event": event,
    }

    if comments_analyzed is not None:
        extra["comments_analyzed"] = comments_analyzed
    if duration_seconds is not None:
        extra["duration_seconds"] = duration_seconds
    if error:
        extra["error"] = error

    if event == "failed":
        logger_instance.error(f"❌ Analysis failed: {video_id} ({error})", extra=extra)
    elif event == "generated":
        logger_instance.info(
            f"✅ Analysis generated: {video_id} ({comments_analyzed} comments)", extra=extra
        )
    else:
        logger_instance.info(f"🧠 Analysis {event}: {video_id}", extra=extra)
