"""Comment analysis pipeline: ingest video and comments -> analyze -> store.

``CommentAnalysisService`` is the single entry point used by the API and the
CLI. It reads through the MongoDB cache, fetches from YouTube on a miss and
generates at most one stored analysis per video.
"""

import secrets
import time
from dataclasses import dataclass

from pymongo.errors import DuplicateKeyError

from src.core.config import Settings, get_settings, get_settings_with_yaml
from src.core.constants import AnalysisOutcome, IngestionStatus
from src.core.exceptions import (
    AnalysisNotFoundError,
    IngestionIncompleteError,
    PipelineError,
    ShareNotFoundError,
    VideoNotFoundError,
)
from src.core.logging_config import get_logger, log_analysis_event, log_ingestion_event
from src.core.schemas import (
    AnalyzedVideoSummary,
    PremiumInterest,
    SharedAnalysis,
    Video,
    VideoAnalysis,
    VideoData,
)
from src.core.usage import UsagePolicy
from src.database.manager import MongoDBManager, get_db_manager
from src.database.redis import init_redis
from src.llm_agents.comment_agent import CommentAnalysisAgent, no_comments_analysis
from src.pipeline.locks import KeyedLocks
from src.youtube.client import YouTubeDataClient


@dataclass
class SummarizeResult:
    """Analysis returned by ``summarize`` and how it was obtained."""

    analysis: VideoAnalysis
    outcome: str

    @property
    def from_cache(self) -> bool:
        return self.outcome == AnalysisOutcome.CACHE_HIT


@dataclass
class SharedAnalysisView:
    """A share record joined with the video and analysis it points at."""

    share: SharedAnalysis
    video: VideoData
    analysis: VideoAnalysis


class CommentAnalysisService:
    """
    Orchestrates ingestion and analysis for a video.

    Steps:
    1. Look up the video in MongoDB, fetching metadata and comments from
       YouTube on a miss
    2. Serve the stored analysis, or generate one with the LLM and store it
    """

    def __init__(
        self,
        store: MongoDBManager,
        youtube: YouTubeDataClient,
        generator: CommentAnalysisAgent,
        locks: KeyedLocks | None = None,
        policy: UsagePolicy | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.youtube = youtube
        self.generator = generator
        self.locks = locks or KeyedLocks(timeout=self.settings.ingestion_lock_timeout)
        self.policy = policy or UsagePolicy.from_settings(self.settings)
        self.logger = get_logger("pipeline")

    # Videos

    async def get_video(
        self,
        video_id: str,
        tier: str | None = None,
        max_comments: int | None = None,
    ) -> VideoData:
        """
        Return a video with its comments, ingesting it on first request.

        Args:
            video_id: YouTube video ID
            tier: Caller's subscription tier
            max_comments: Requested comment count (defaults to the tier default)

        Returns:
            VideoData with the stored comments

        Raises:
            UsageLimitError: If ``max_comments`` exceeds the tier limit
            VideoNotFoundError: If YouTube does not know the video
            UpstreamError: If YouTube fails
        """
        limit = self.policy.resolve_max_comments(tier, max_comments)

        cached = await self.store.get_video(video_id)
        if cached is not None and cached.ingestion_status == IngestionStatus.COMPLETE:
            log_ingestion_event(self.logger, video_id, "cached")
            return cached

        async with self.locks.hold(f"ingest:{video_id}"):
            # Another request may have finished while we waited
            cached = await self.store.get_video(video_id)
            if cached is not None and cached.ingestion_status == IngestionStatus.COMPLETE:
                return cached

            return await self._ingest(video_id, limit, existing=cached)

    async def _ingest(self, video_id: str, limit: int, existing: VideoData | None) -> VideoData:
        started = time.monotonic()
        log_ingestion_event(self.logger, video_id, "started")

        try:
            if existing is None:
                metadata = await self.youtube.get_video_metadata(video_id)
                video = Video(
                    **metadata.model_dump(), ingestion_status=IngestionStatus.PENDING
                )
                try:
                    await self.store.create_video(video)
                except DuplicateKeyError:
                    self.logger.info(f"Video {video_id} inserted concurrently, reusing it")
            else:
                self.logger.info(
                    f"Resuming ingestion of {video_id} (status={existing.ingestion_status})"
                )

            comments = await self.youtube.get_comments(video_id, limit)
            await self.store.create_comments(comments)
            await self.store.set_ingestion_status(video_id, IngestionStatus.COMPLETE)
        except VideoNotFoundError:
            log_ingestion_event(self.logger, video_id, "failed", error="video not found")
            raise
        except Exception as e:
            log_ingestion_event(self.logger, video_id, "failed", error=str(e))
            if existing is not None or await self.store.get_video(video_id) is not None:
                await self.store.set_ingestion_status(video_id, IngestionStatus.FAILED)
            raise

        stored = await self.store.get_video(video_id)
        if stored is None:
            raise PipelineError(f"Video {video_id} missing after ingestion")

        log_ingestion_event(
            self.logger,
            video_id,
            "completed",
            comment_count=len(stored.comments),
            duration_seconds=time.monotonic() - started,
        )
        return stored

    # Analyses

    async def summarize(self, video_id: str, force_refresh: bool = False) -> SummarizeResult:
        """
        Return the stored analysis for a video, generating it if needed.

        ``force_refresh`` only regenerates an existing analysis when the
        ``analysis_honor_force_refresh`` setting is enabled.

        Raises:
            VideoNotFoundError: If the video has not been ingested
            IngestionIncompleteError: If comment ingestion did not finish
            GenerationError: If the LLM call or its output fails
        """
        video = await self.store.get_video(video_id)
        if video is None:
            raise VideoNotFoundError()

        if video.ingestion_status != IngestionStatus.COMPLETE:
            raise IngestionIncompleteError(
                f"Comment ingestion for video {video_id} is {video.ingestion_status}; "
                "fetch the video again before summarizing"
            )

        regenerate = force_refresh and self.settings.analysis_honor_force_refresh

        existing = await self.store.get_analysis(video_id)
        if existing is not None and not regenerate:
            log_analysis_event(self.logger, video_id, AnalysisOutcome.CACHE_HIT)
            return SummarizeResult(existing, AnalysisOutcome.CACHE_HIT)

        async with self.locks.hold(f"analysis:{video_id}"):
            if not regenerate:
                existing = await self.store.get_analysis(video_id)
                if existing is not None:
                    return SummarizeResult(existing, AnalysisOutcome.CACHE_HIT)

            if not video.comments:
                outcome = AnalysisOutcome.NO_COMMENTS
                result = no_comments_analysis()
                log_analysis_event(self.logger, video_id, outcome, comments_analyzed=0)
            else:
                outcome = AnalysisOutcome.GENERATED
                started = time.monotonic()
                try:
                    result = await self.generator.analyze(video, video.comments)
                except Exception as e:
                    log_analysis_event(
                        self.logger, video_id, AnalysisOutcome.FAILED, error=str(e)
                    )
                    raise
                log_analysis_event(
                    self.logger,
                    video_id,
                    outcome,
                    comments_analyzed=result.comments_analyzed,
                    duration_seconds=time.monotonic() - started,
                )

            if existing is not None:
                updated = await self.store.update_analysis(video_id, result.model_dump_for_mongo())
                if updated is not None:
                    return SummarizeResult(updated, outcome)

            analysis = VideoAnalysis(video_id=video_id, **result.model_dump())
            try:
                stored = await self.store.create_analysis(analysis)
            except DuplicateKeyError:
                winner = await self.store.get_analysis(video_id)
                if winner is None:
                    raise
                return SummarizeResult(winner, AnalysisOutcome.CACHE_HIT)

            return SummarizeResult(stored, outcome)

    async def get_analysis(self, video_id: str) -> VideoAnalysis:
        """Raises AnalysisNotFoundError when the video has no analysis."""
        analysis = await self.store.get_analysis(video_id)
        if analysis is None:
            raise AnalysisNotFoundError()
        return analysis

    async def list_analyzed_videos(
        self, limit: int = 20, offset: int = 0
    ) -> list[AnalyzedVideoSummary]:
        return await self.store.list_analyzed_videos(limit=limit, offset=offset)

    async def count_analyzed_videos(self) -> int:
        return await self.store.get_analysis_count()

    # Sharing

    async def share_analysis(self, video_id: str, username: str | None = None) -> SharedAnalysis:
        """Create a share link for an existing analysis."""
        if await self.store.get_analysis(video_id) is None:
            raise AnalysisNotFoundError()

        share = SharedAnalysis(
            share_id=secrets.token_urlsafe(9),
            video_id=video_id,
            username=username,
        )
        return await self.store.create_share(share)

    async def get_shared_analysis(self, share_id: str) -> SharedAnalysisView:
        """Resolve a share link and count the view."""
        share = await self.store.get_share(share_id)
        if share is None:
            raise ShareNotFoundError()

        video = await self.store.get_video(share.video_id)
        analysis = await self.store.get_analysis(share.video_id)
        if video is None or analysis is None:
            raise ShareNotFoundError("Shared analysis is no longer available")

        await self.store.increment_share_views(share_id)
        share.views += 1
        return SharedAnalysisView(share=share, video=video, analysis=analysis)

    def share_url(self, share_id: str) -> str:
        return f"{self.settings.share_base_url.rstrip('/')}/shared/{share_id}"

    # Premium interest

    async def register_premium_interest(self, email: str, comment_count: int) -> PremiumInterest:
        interest = PremiumInterest(email=email, comment_count=comment_count)
        self.logger.info(f"Premium interest registered for {comment_count} comments")
        return await self.store.create_premium_interest(interest)

    async def close(self) -> None:
        """Release the YouTube HTTP client and the MongoDB connection."""
        await self.youtube.close()
        await self.store.close()


async def build_analysis_service(settings: Settings | None = None) -> CommentAnalysisService:
    """
    Connect to MongoDB (and Redis when enabled) and wire up the service.

    Redis is optional: without it the ingestion locks are per-process.
    """
    settings = settings or get_settings_with_yaml()

    store = get_db_manager()
    await store.init_indexes()

    redis_manager = None
    if settings.redis_enabled:
        redis_manager = await init_redis()
        if not redis_manager.is_available:
            get_logger("pipeline").warning(
                "Redis unavailable, ingestion locks are local to this process"
            )

    return CommentAnalysisService(
        store=store,
        youtube=YouTubeDataClient(settings=settings),
        generator=CommentAnalysisAgent(settings=settings),
        locks=KeyedLocks(redis_manager, timeout=settings.ingestion_lock_timeout),
        policy=UsagePolicy.from_settings(settings),
        settings=settings,
    )
