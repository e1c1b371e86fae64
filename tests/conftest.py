"""Pytest fixtures and configuration.

This module provides:
- Test settings (no Redis, rate limiting or Prometheus)
- An in-memory stand-in for the MongoDB store
- Fake YouTube client and analysis generator
- Sample data fixtures
- Test client for FastAPI
"""

import os

# Settings are cached on first use, so the test environment must be in place
# before anything under src is imported.
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("PROMETHEUS_ENABLED", "false")
os.environ.setdefault("AUTH_REQUIRE_KEY", "false")
os.environ.setdefault("MONGODB_DATABASE", "test_comment_insight")

from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from src.api.app import create_app
from src.api.security import reset_api_key_validator
from src.core.config import Settings, get_settings
from src.core.constants import IngestionStatus
from src.core.exceptions import VideoNotFoundError
from src.core.schemas import (
    AnalysisResult,
    AnalyzedVideoSummary,
    Comment,
    KeyPoint,
    PremiumInterest,
    SentimentStats,
    SharedAnalysis,
    Video,
    VideoAnalysis,
    VideoData,
    VideoMetadata,
    utc_now,
)
from src.pipeline.analysis import CommentAnalysisService
from src.pipeline.locks import KeyedLocks

TEST_VIDEO_ID = "dQw4w9WgXcQ"
TEST_CHANNEL_ID = "UC_test_channel"


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_cached_settings() -> Generator[None, None, None]:
    """Rebuild settings and the API key validator for every test."""
    get_settings.cache_clear()
    reset_api_key_validator()
    yield
    get_settings.cache_clear()
    reset_api_key_validator()


@pytest.fixture
def settings() -> Settings:
    """Settings with external services disabled."""
    return Settings(
        redis_enabled=False,
        rate_limit_enabled=False,
        prometheus_enabled=False,
        youtube_api_key="test-youtube-key",
        openai_api_key="test-openai-key",
    )


# =============================================================================
# In-memory doubles
# =============================================================================


class InMemoryStore:
    """Dict-backed stand-in for MongoDBManager with the same unique keys."""

    def __init__(self) -> None:
        self.videos: dict[str, Video] = {}
        self.comments: dict[str, Comment] = {}
        self.analyses: dict[str, VideoAnalysis] = {}
        self.shares: dict[str, SharedAnalysis] = {}
        self.premium_interest: list[PremiumInterest] = []
        self.closed = False

    async def ping(self) -> None:
        return None

    async def close(self) -> None:
        self.closed = True

    async def get_video(self, video_id: str) -> VideoData | None:
        video = self.videos.get(video_id)
        if video is None:
            return None
        return VideoData(**video.model_dump(), comments=await self.get_comments(video_id))

    async def create_video(self, video: Video) -> Video:
        if video.id in self.videos:
            raise DuplicateKeyError(f"E11000 duplicate key error: videos.id {video.id}")
        self.videos[video.id] = video.model_copy()
        return video

    async def set_ingestion_status(self, video_id: str, status: str) -> bool:
        video = self.videos.get(video_id)
        if video is None:
            return False
        video.ingestion_status = status  # type: ignore[assignment]
        return True

    async def get_comments(self, video_id: str) -> list[Comment]:
        return [c for c in self.comments.values() if c.video_id == video_id]

    async def create_comments(self, comments: list[Comment]) -> list[Comment]:
        for comment in comments:
            self.comments.setdefault(comment.id, comment)
        return comments

    async def get_analysis(self, video_id: str) -> VideoAnalysis | None:
        return self.analyses.get(video_id)

    async def create_analysis(self, analysis: VideoAnalysis) -> VideoAnalysis:
        if analysis.video_id in self.analyses:
            raise DuplicateKeyError(
                f"E11000 duplicate key error: analyses.video_id {analysis.video_id}"
            )
        self.analyses[analysis.video_id] = analysis
        return analysis

    async def update_analysis(self, video_id: str, fields: dict[str, Any]) -> VideoAnalysis | None:
        existing = self.analyses.get(video_id)
        if existing is None:
            return None
        updated = VideoAnalysis(**{**existing.model_dump(), **fields, "created_at": utc_now()})
        self.analyses[video_id] = updated
        return updated

    async def list_analyzed_videos(
        self, limit: int = 20, offset: int = 0
    ) -> list[AnalyzedVideoSummary]:
        analyses = sorted(self.analyses.values(), key=lambda a: a.created_at, reverse=True)
        rows = []
        for analysis in analyses[offset : offset + limit]:
            video = self.videos.get(analysis.video_id)
            if video is None:
                continue
            rows.append(
                AnalyzedVideoSummary(
                    video_id=video.id,
                    title=video.title,
                    channel_title=video.channel_title,
                    published_at=video.published_at,
                    thumbnail=video.thumbnail,
                    view_count=video.view_count,
                    comments_analyzed=analysis.comments_analyzed,
                    analysis_date=analysis.created_at,
                )
            )
        return rows

    async def get_analysis_count(self) -> int:
        return len(self.analyses)

    async def create_share(self, share: SharedAnalysis) -> SharedAnalysis:
        self.shares[share.share_id] = share
        return share

    async def get_share(self, share_id: str) -> SharedAnalysis | None:
        share = self.shares.get(share_id)
        return share.model_copy() if share else None

    async def increment_share_views(self, share_id: str) -> bool:
        share = self.shares.get(share_id)
        if share is None:
            return False
        share.views += 1
        return True

    async def create_premium_interest(self, interest: PremiumInterest) -> PremiumInterest:
        self.premium_interest.append(interest)
        return interest


class FakeYouTubeClient:
    """Serves canned metadata and comments, counting calls."""

    def __init__(self) -> None:
        self.videos: dict[str, VideoMetadata] = {}
        self.comments: dict[str, list[Comment]] = {}
        self.metadata_calls = 0
        self.comment_calls: list[tuple[str, int]] = []
        self.comments_error: Exception | None = None
        self.closed = False

    async def get_video_metadata(self, video_id: str) -> VideoMetadata:
        self.metadata_calls += 1
        if video_id not in self.videos:
            raise VideoNotFoundError()
        return self.videos[video_id]

    async def get_comments(self, video_id: str, max_comments: int = 100) -> list[Comment]:
        self.comment_calls.append((video_id, max_comments))
        if self.comments_error is not None:
            raise self.comments_error
        return self.comments.get(video_id, [])[:max_comments]

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Sample Data Fixtures
# =============================================================================


def make_metadata(video_id: str = TEST_VIDEO_ID, **overrides: Any) -> VideoMetadata:
    data: dict[str, Any] = {
        "id": video_id,
        "title": "Test Video Title",
        "description": "A video used in tests",
        "channel_id": TEST_CHANNEL_ID,
        "channel_title": "Test Channel",
        "published_at": datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        "thumbnail": f"https://i.ytimg.com/vi/{video_id}/maxresdefault.jpg",
        "view_count": 1000,
        "like_count": 100,
        "comment_count": 2,
    }
    data.update(overrides)
    return VideoMetadata(**data)


def make_comment(index: int, video_id: str = TEST_VIDEO_ID, **overrides: Any) -> Comment:
    data: dict[str, Any] = {
        "id": f"comment_{video_id}_{index}",
        "video_id": video_id,
        "author_display_name": f"Viewer {index}",
        "author_channel_id": f"UC_viewer_{index}",
        "text_display": f"Comment number {index}",
        "text_original": f"Comment number {index}",
        "like_count": index,
    }
    data.update(overrides)
    return Comment(**data)


def make_analysis_result(comments_analyzed: int = 2) -> AnalysisResult:
    return AnalysisResult(
        sentiment_stats=SentimentStats(positive=60, neutral=30, negative=10),
        key_points=[
            KeyPoint(title="Praise", content="Viewers liked the editing."),
            KeyPoint(title="Requests", content="Several viewers asked for a sequel."),
            KeyPoint(title="Audio", content="A few comments mention quiet audio."),
        ],
        comprehensive="Viewers were mostly positive.\n\nSome asked for more.",
        comments_analyzed=comments_analyzed,
    )


@pytest.fixture
def sample_metadata() -> VideoMetadata:
    return make_metadata()


@pytest.fixture
def sample_comments() -> list[Comment]:
    return [make_comment(1), make_comment(2)]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def youtube(sample_metadata: VideoMetadata, sample_comments: list[Comment]) -> FakeYouTubeClient:
    client = FakeYouTubeClient()
    client.videos[sample_metadata.id] = sample_metadata
    client.comments[sample_metadata.id] = sample_comments
    return client


@pytest.fixture
def generator() -> AsyncMock:
    """Analysis generator echoing the number of comments it was given."""
    mock = AsyncMock()

    async def _analyze(video: VideoMetadata, comments: list[Comment]) -> AnalysisResult:
        return make_analysis_result(comments_analyzed=len(comments))

    mock.analyze.side_effect = _analyze
    return mock


@pytest.fixture
def service(
    store: InMemoryStore,
    youtube: FakeYouTubeClient,
    generator: AsyncMock,
    settings: Settings,
) -> CommentAnalysisService:
    return CommentAnalysisService(
        store=store,  # type: ignore[arg-type]
        youtube=youtube,  # type: ignore[arg-type]
        generator=generator,
        locks=KeyedLocks(),
        settings=settings,
    )


@pytest.fixture
def ingested_video(store: InMemoryStore, sample_metadata: VideoMetadata, sample_comments) -> Video:
    """A video already stored with its comments."""
    video = Video(**sample_metadata.model_dump(), ingestion_status=IngestionStatus.COMPLETE)
    store.videos[video.id] = video
    for comment in sample_comments:
        store.comments[comment.id] = comment
    return video


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app(service: CommentAnalysisService) -> FastAPI:
    """FastAPI application wired to the in-memory service."""
    return create_app(service=service)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def client_no_raise(app: FastAPI) -> Generator[TestClient, None, None]:
    """Client returning 500 responses instead of re-raising server errors."""
    with TestClient(app, base_url="http://test", raise_server_exceptions=False) as test_client:
        yield test_client


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
