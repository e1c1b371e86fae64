"""Pydantic models for API requests and responses.

Bodies use camelCase on the wire; the snake_case field names are accepted on
input as well.
"""

from datetime import datetime

from pydantic import Field

from src.core.constants import DEFAULT_LIMIT, DEFAULT_OFFSET
from src.core.schemas import (
    AnalyzedVideoSummary,
    CamelModel,
    VideoAnalysis,
    VideoData,
)

# =============================================================================
# Request Models
# =============================================================================


class SummarizeRequest(CamelModel):
    """Request body for comment analysis."""

    video_id: str = Field(
        ...,
        min_length=1,
        description="YouTube video ID (the video must have been fetched first)",
        examples=["dQw4w9WgXcQ"],
    )
    force_refresh: bool = Field(
        default=False,
        description="Ask for a fresh analysis even if one is stored",
    )


class ShareRequest(CamelModel):
    """Request body for publishing an analysis."""

    video_id: str = Field(..., min_length=1, examples=["dQw4w9WgXcQ"])
    username: str | None = Field(
        default=None,
        max_length=100,
        description="Display name shown on the shared page",
    )


class PremiumInterestRequest(CamelModel):
    """Request body for premium interest registration."""

    email: str = Field(
        ...,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        examples=["someone@example.com"],
    )
    comment_count: int = Field(
        ...,
        gt=0,
        description="Comment limit the user is interested in",
        examples=[5000],
    )


# =============================================================================
# Response Models
# =============================================================================


class AnalysisResponse(VideoAnalysis):
    """Stored analysis plus whether it was served from the cache."""

    from_cache: bool = Field(default=False)


class AnalyzedVideosResponse(CamelModel):
    """Paginated list of analyzed videos, newest analysis first."""

    videos: list[AnalyzedVideoSummary]
    total: int
    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET


class ShareResponse(CamelModel):
    """Created share link."""

    share_id: str
    video_id: str
    username: str | None = None
    created_at: datetime
    url: str


class SharedAnalysisResponse(CamelModel):
    """Shared analysis with the video it belongs to."""

    share_id: str
    video_data: VideoData
    analysis_data: VideoAnalysis
    shared_by: str | None = None
    created_at: datetime
    views: int


class PremiumInterestResponse(CamelModel):
    """Acknowledgement of a premium interest registration."""

    success: bool = True
    message: str = "Thanks! We'll let you know when premium plans are available."
