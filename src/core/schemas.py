"""Pydantic schemas for videos, comments and comment analyses.

Models serialize with camelCase aliases for the HTTP API and accept either
the alias or the snake_case field name on input, so the same classes validate
YouTube-shaped JSON, MongoDB documents and LLM responses.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.constants import IngestionStatus


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def model_dump_for_mongo(self) -> dict[str, Any]:
        """Dump to a MongoDB document (snake_case keys, ISO timestamps)."""
        return self.model_dump(mode="json")


class VideoMetadata(CamelModel):
    """Video metadata as returned by the YouTube Data API."""

    id: str = Field(..., description="YouTube video ID")
    title: str = Field(..., description="Video title")
    description: str = Field(default="", description="Video description")
    channel_id: str = Field(..., description="Channel ID")
    channel_title: str = Field(..., description="Channel display name")
    published_at: datetime = Field(..., description="Video publish date")
    thumbnail: str = Field(default="", description="Best available thumbnail URL")
    view_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)


class Video(VideoMetadata):
    """Stored video record."""

    fetched_at: datetime = Field(default_factory=utc_now, description="When the video was cached")
    ingestion_status: Literal["pending", "complete", "failed"] = Field(
        # Records written before ingestion tracking are complete
        default=IngestionStatus.COMPLETE,
        description="Whether comment ingestion finished",
    )


class Comment(CamelModel):
    """A top-level comment on a video."""

    id: str = Field(..., description="YouTube comment ID")
    video_id: str = Field(..., description="Owning video ID")
    author_display_name: str = Field(..., description="Author display name")
    author_profile_image_url: str | None = None
    author_channel_id: str | None = None
    text_display: str = Field(default="", description="Rendered comment text")
    text_original: str = Field(default="", description="Original comment text")
    like_count: int = Field(default=0, ge=0)
    published_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class VideoData(Video):
    """A video joined with its stored comments."""

    comments: list[Comment] = Field(default_factory=list)


class SentimentStats(CamelModel):
    """Sentiment distribution in percent."""

    positive: float = Field(..., ge=0, le=100)
    neutral: float = Field(..., ge=0, le=100)
    negative: float = Field(..., ge=0, le=100)


class KeyPoint(CamelModel):
    """A titled discussion theme."""

    title: str
    content: str


class AnalysisResult(CamelModel):
    """Output of the analysis generator."""

    sentiment_stats: SentimentStats
    key_points: list[KeyPoint]
    comprehensive: str
    comments_analyzed: int = Field(..., ge=0)


class VideoAnalysis(AnalysisResult):
    """Stored analysis, one per video."""

    video_id: str
    created_at: datetime = Field(default_factory=utc_now)


class AnalyzedVideoSummary(CamelModel):
    """Row of the analyzed videos listing."""

    video_id: str
    title: str
    channel_title: str
    published_at: datetime
    thumbnail: str = ""
    view_count: int = 0
    comments_analyzed: int = 0
    analysis_date: datetime


class SharedAnalysis(CamelModel):
    """Public share link for an analysis."""

    share_id: str
    video_id: str
    username: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    views: int = 0


class PremiumInterest(CamelModel):
    """Registered interest in a higher comment limit."""

    email: str
    comment_count: int = Field(..., gt=0)
    created_at: datetime = Field(default_factory=utc_now)
