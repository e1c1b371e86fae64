"""YouTube Data API access."""

from src.youtube.client import (
    YouTubeDataClient,
    extract_video_id,
    normalize_video_id,
    parse_count,
    select_thumbnail,
)

__all__ = [
    "YouTubeDataClient",
    "extract_video_id",
    "normalize_video_id",
    "parse_count",
    "select_thumbnail",
]
