"""Tests for the comment analysis service.

These tests verify:
- Video lookup through the cache and first-time ingestion
- Retrying incomplete ingestion
- Analysis caching, the zero-comments short circuit and forceRefresh
- Concurrent requests producing a single stored video and analysis
- Sharing and premium interest
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.core.constants import AnalysisOutcome, IngestionStatus
from src.core.exceptions import (
    AnalysisNotFoundError,
    GenerationError,
    IngestionIncompleteError,
    ShareNotFoundError,
    UsageLimitError,
    VideoNotFoundError,
    YouTubeAPIError,
)
from src.core.schemas import Video
from tests.conftest import TEST_VIDEO_ID, make_comment, make_metadata


@pytest.fixture
def slow_generator(generator: AsyncMock) -> AsyncMock:
    """Generator that yields to the event loop before answering."""
    inner = generator.analyze.side_effect

    async def _slow(video, comments):
        await asyncio.sleep(0.01)
        return await inner(video, comments)

    generator.analyze.side_effect = _slow
    return generator


class TestGetVideo:
    """Test video lookup and ingestion."""

    async def test_first_request_ingests(self, service, store, youtube) -> None:
        """
        Given: A video that is not cached
        When: Requesting it
        Then: Metadata and comments are fetched once and stored as complete
        """
        video = await service.get_video(TEST_VIDEO_ID)

        assert video.id == TEST_VIDEO_ID
        assert len(video.comments) == 2
        assert video.ingestion_status == IngestionStatus.COMPLETE
        assert youtube.metadata_calls == 1
        assert youtube.comment_calls == [(TEST_VIDEO_ID, 100)]
        assert store.videos[TEST_VIDEO_ID].ingestion_status == IngestionStatus.COMPLETE

    async def test_second_request_served_from_cache(self, service, youtube) -> None:
        """
        Given: A video fetched once already
        When: Requesting it again
        Then: YouTube is not called a second time
        """
        first = await service.get_video(TEST_VIDEO_ID)
        second = await service.get_video(TEST_VIDEO_ID)

        assert second == first
        assert youtube.metadata_calls == 1
        assert len(youtube.comment_calls) == 1

    async def test_unknown_video_is_not_stored(self, service, store) -> None:
        with pytest.raises(VideoNotFoundError):
            await service.get_video("unknown0000")

        assert store.videos == {}

    async def test_video_without_comments(self, service, store, youtube) -> None:
        """
        Given: A video whose comments are disabled
        When: Requesting it
        Then: It is stored as complete with an empty comment list
        """
        youtube.comments[TEST_VIDEO_ID] = []

        video = await service.get_video(TEST_VIDEO_ID)

        assert video.comments == []
        assert store.videos[TEST_VIDEO_ID].ingestion_status == IngestionStatus.COMPLETE

    async def test_comment_failure_marks_video_failed(self, service, store, youtube) -> None:
        """
        Given: Comment ingestion fails after the video was stored
        When: Requesting the video
        Then: The error propagates and the video is marked failed
        """
        youtube.comments_error = YouTubeAPIError("Backend Error", status_code=500)

        with pytest.raises(YouTubeAPIError, match="Backend Error"):
            await service.get_video(TEST_VIDEO_ID)

        assert store.videos[TEST_VIDEO_ID].ingestion_status == IngestionStatus.FAILED

    async def test_failed_ingestion_is_retried(self, service, store, youtube) -> None:
        """
        Given: A video whose previous comment ingestion failed
        When: Requesting it again
        Then: Comments are fetched again without refetching metadata
        """
        youtube.comments_error = YouTubeAPIError("Backend Error")
        with pytest.raises(YouTubeAPIError):
            await service.get_video(TEST_VIDEO_ID)

        youtube.comments_error = None
        video = await service.get_video(TEST_VIDEO_ID)

        assert video.ingestion_status == IngestionStatus.COMPLETE
        assert len(video.comments) == 2
        assert youtube.metadata_calls == 1
        assert len(youtube.comment_calls) == 2

    async def test_max_comments_within_tier(self, service, youtube) -> None:
        await service.get_video(TEST_VIDEO_ID, tier="pro", max_comments=500)

        assert youtube.comment_calls == [(TEST_VIDEO_ID, 500)]

    async def test_max_comments_over_tier_limit(self, service, youtube) -> None:
        """
        Given: A free tier caller
        When: Asking for 500 comments
        Then: UsageLimitError suggests an upgrade and nothing is fetched
        """
        with pytest.raises(UsageLimitError, match="Upgrade to pro"):
            await service.get_video(TEST_VIDEO_ID, tier="free", max_comments=500)

        assert youtube.metadata_calls == 0

    async def test_concurrent_requests_ingest_once(self, service, store, youtube) -> None:
        """
        Given: Two simultaneous first requests for the same video
        When: Both complete
        Then: One video with one copy of each comment is stored
        """
        first, second = await asyncio.gather(
            service.get_video(TEST_VIDEO_ID), service.get_video(TEST_VIDEO_ID)
        )

        assert first.id == second.id == TEST_VIDEO_ID
        assert youtube.metadata_calls == 1
        assert len(store.videos) == 1
        assert len(store.comments) == 2

    async def test_duplicate_video_insert_is_tolerated(self, service, store) -> None:
        """
        Given: Another worker stored the pending video between our checks
        When: Ingesting
        Then: The duplicate insert is ignored and ingestion completes
        """
        original_create = store.create_video

        async def racing_create(video: Video) -> Video:
            await original_create(video)
            return await original_create(video)

        store.create_video = racing_create

        video = await service.get_video(TEST_VIDEO_ID)

        assert video.ingestion_status == IngestionStatus.COMPLETE
        assert len(video.comments) == 2


class TestSummarize:
    """Test analysis generation and caching."""

    async def test_unknown_video(self, service) -> None:
        with pytest.raises(VideoNotFoundError, match="Video not found"):
            await service.summarize("unknown0000")

    async def test_generates_and_stores(self, service, store, generator, ingested_video) -> None:
        """
        Given: A video with two comments and no analysis
        When: Summarizing
        Then: One analysis is generated, stored and reports 2 comments analyzed
        """
        result = await service.summarize(TEST_VIDEO_ID)

        assert result.outcome == AnalysisOutcome.GENERATED
        assert result.from_cache is False
        assert result.analysis.video_id == TEST_VIDEO_ID
        assert result.analysis.comments_analyzed == 2
        assert store.analyses[TEST_VIDEO_ID] == result.analysis
        generator.analyze.assert_awaited_once()

    async def test_second_call_is_cache_hit(self, service, generator, ingested_video) -> None:
        """
        Given: A stored analysis
        When: Summarizing again
        Then: The same analysis is returned from the cache
        """
        first = await service.summarize(TEST_VIDEO_ID)
        second = await service.summarize(TEST_VIDEO_ID)

        assert second.from_cache is True
        assert second.analysis.created_at == first.analysis.created_at
        assert generator.analyze.await_count == 1

    async def test_force_refresh_ignored_by_default(
        self, service, generator, ingested_video
    ) -> None:
        """
        Given: A stored analysis and the default settings
        When: Summarizing with forceRefresh
        Then: The stored analysis is returned unchanged
        """
        first = await service.summarize(TEST_VIDEO_ID)
        second = await service.summarize(TEST_VIDEO_ID, force_refresh=True)

        assert second.from_cache is True
        assert second.analysis.created_at == first.analysis.created_at
        assert generator.analyze.await_count == 1

    async def test_force_refresh_honored_when_enabled(
        self, service, store, generator, settings, ingested_video
    ) -> None:
        """
        Given: analysis_honor_force_refresh is enabled
        When: Summarizing with forceRefresh
        Then: A new analysis overwrites the stored one
        """
        settings.analysis_honor_force_refresh = True
        first = await service.summarize(TEST_VIDEO_ID)

        second = await service.summarize(TEST_VIDEO_ID, force_refresh=True)

        assert second.from_cache is False
        assert generator.analyze.await_count == 2
        assert second.analysis.created_at >= first.analysis.created_at
        assert len(store.analyses) == 1

    async def test_zero_comments_short_circuit(
        self, service, store, youtube, generator
    ) -> None:
        """
        Given: A video ingested with zero comments
        When: Summarizing
        Then: The fixed no-comments analysis is stored without calling the generator
        """
        youtube.comments[TEST_VIDEO_ID] = []
        await service.get_video(TEST_VIDEO_ID)

        result = await service.summarize(TEST_VIDEO_ID)

        assert result.outcome == AnalysisOutcome.NO_COMMENTS
        assert result.analysis.comments_analyzed == 0
        assert result.analysis.sentiment_stats.neutral == 100
        assert result.analysis.key_points[0].title == "No Comments Available"
        assert TEST_VIDEO_ID in store.analyses
        generator.analyze.assert_not_awaited()

    async def test_incomplete_ingestion_rejected(self, service, store, ingested_video) -> None:
        """
        Given: A video whose comment ingestion did not finish
        When: Summarizing
        Then: IngestionIncompleteError is raised instead of analyzing partial data
        """
        store.videos[TEST_VIDEO_ID].ingestion_status = IngestionStatus.PENDING

        with pytest.raises(IngestionIncompleteError):
            await service.summarize(TEST_VIDEO_ID)

    async def test_generation_failure_stores_nothing(
        self, service, store, generator, ingested_video
    ) -> None:
        generator.analyze.side_effect = GenerationError("LLM call failed: boom")

        with pytest.raises(GenerationError, match="boom"):
            await service.summarize(TEST_VIDEO_ID)

        assert store.analyses == {}

    async def test_concurrent_summaries_generate_once(
        self, service, store, slow_generator, ingested_video
    ) -> None:
        """
        Given: Two simultaneous summarize calls
        When: Both complete
        Then: One analysis is generated and both return it
        """
        first, second = await asyncio.gather(
            service.summarize(TEST_VIDEO_ID), service.summarize(TEST_VIDEO_ID)
        )

        assert slow_generator.analyze.await_count == 1
        assert first.analysis == second.analysis
        assert {first.from_cache, second.from_cache} == {True, False}
        assert len(store.analyses) == 1

    async def test_duplicate_insert_returns_winner(self, service, store, ingested_video) -> None:
        """
        Given: Another worker stores an analysis while ours is generating
        When: Our insert hits the unique index
        Then: The stored analysis is returned as a cache hit
        """
        original_create = store.create_analysis

        async def racing_create(analysis):
            await original_create(analysis.model_copy(update={"comprehensive": "winner"}))
            return await original_create(analysis)

        store.create_analysis = racing_create

        result = await service.summarize(TEST_VIDEO_ID)

        assert result.from_cache is True
        assert result.analysis.comprehensive == "winner"


class TestEndToEnd:
    async def test_lookup_then_summarize(self, service) -> None:
        """
        Given: A video with two comments on YouTube
        When: Fetching it and then summarizing
        Then: The analysis covers both comments
        """
        video = await service.get_video(TEST_VIDEO_ID)
        result = await service.summarize(video.id)

        assert result.analysis.comments_analyzed == 2
        assert result.analysis.key_points


class TestReadOperations:
    async def test_get_analysis_missing(self, service) -> None:
        with pytest.raises(AnalysisNotFoundError):
            await service.get_analysis(TEST_VIDEO_ID)

    async def test_list_analyzed_videos_newest_first(self, service, store, youtube) -> None:
        for index, video_id in enumerate(["aaaaaaaaaaa", "bbbbbbbbbbb"]):
            youtube.videos[video_id] = make_metadata(video_id, title=f"Video {index}")
            youtube.comments[video_id] = [make_comment(1, video_id=video_id)]
            await service.get_video(video_id)
            await service.summarize(video_id)
            store.analyses[video_id].created_at = datetime(2024, 2, index + 1, tzinfo=timezone.utc)

        rows = await service.list_analyzed_videos(limit=10)

        assert [row.video_id for row in rows] == ["bbbbbbbbbbb", "aaaaaaaaaaa"]
        assert rows[0].comments_analyzed == 1
        assert await service.count_analyzed_videos() == 2


class TestSharing:
    async def test_share_requires_analysis(self, service, ingested_video) -> None:
        with pytest.raises(AnalysisNotFoundError):
            await service.share_analysis(TEST_VIDEO_ID)

    async def test_share_and_view(self, service, settings, ingested_video) -> None:
        """
        Given: An analyzed video
        When: Sharing it and opening the share twice
        Then: Both views return the analysis and the counter increases
        """
        await service.summarize(TEST_VIDEO_ID)
        share = await service.share_analysis(TEST_VIDEO_ID, username="alice")

        first = await service.get_shared_analysis(share.share_id)
        second = await service.get_shared_analysis(share.share_id)

        assert first.share.username == "alice"
        assert first.video.id == TEST_VIDEO_ID
        assert first.analysis.video_id == TEST_VIDEO_ID
        assert (first.share.views, second.share.views) == (1, 2)
        assert service.share_url(share.share_id) == (
            f"{settings.share_base_url}/shared/{share.share_id}"
        )

    async def test_unknown_share(self, service) -> None:
        with pytest.raises(ShareNotFoundError):
            await service.get_shared_analysis("nope")


class TestPremiumInterest:
    async def test_register(self, service, store) -> None:
        interest = await service.register_premium_interest("a@example.com", 5000)

        assert interest.comment_count == 5000
        assert store.premium_interest == [interest]


class TestClose:
    async def test_close_releases_clients(self, service, store, youtube) -> None:
        await service.close()

        assert youtube.closed is True
        assert store.closed is True

