"""Core package: settings, schemas, errors and logging."""

from src.core.config import Settings, get_settings
from src.core.logging_config import (
    get_logger,
    log_analysis_event,
    log_ingestion_event,
    setup_logging,
)
from src.core.schemas import Comment, VideoAnalysis, VideoData, VideoMetadata
from src.core.usage import UsagePolicy

__all__ = [
    "Settings",
    "get_settings",
    "Comment",
    "VideoAnalysis",
    "VideoData",
    "VideoMetadata",
    "UsagePolicy",
    # Logging
    "setup_logging",
    "get_logger",
    "log_ingestion_event",
    "log_analysis_event",
]
