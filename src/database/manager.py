"""MongoDB database manager.

This module handles all MongoDB connection management and operations.
"""

from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import BulkWriteError

from src.core.config import Settings, get_settings
from src.core.schemas import (
    AnalyzedVideoSummary,
    Comment,
    PremiumInterest,
    SharedAnalysis,
    Video,
    VideoAnalysis,
    VideoData,
    utc_now,
)

DUPLICATE_KEY_ERROR_CODE = 11000


def _strip_id(doc: dict[str, Any]) -> dict[str, Any]:
    doc.pop("_id", None)
    return doc


class MongoDBManager:
    """Manage MongoDB operations for the comment analysis service.

    This class provides:
    - Connection lifecycle management
    - Collection access
    - CRUD operations for videos, comments, analyses, shares and premium interest
    - Index management

    Usage:
        # Context manager (recommended)
        async with MongoDBManager() as db:
            await db.get_video(...)

        # Manual lifecycle management
        db = MongoDBManager()
        try:
            await db.get_video(...)
        finally:
            await db.close()
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize MongoDB manager."""
        self.settings = settings or get_settings()
        self.client: AsyncIOMotorClient | None = None
        self.db: AsyncIOMotorDatabase | None = None
        self.videos: Any | None = None
        self.comments: Any | None = None
        self.analyses: Any | None = None
        self.shared_analyses: Any | None = None
        self.premium_interest: Any | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize MongoDB connection."""
        if self._initialized:
            return

        self.client = AsyncIOMotorClient(self.settings.mongodb_url)
        self.db = self.client[self.settings.mongodb_database]
        self.videos = self.db.videos
        self.comments = self.db.comments
        self.analyses = self.db.analyses
        self.shared_analyses = self.db.shared_analyses
        self.premium_interest = self.db.premium_interest
        self._initialized = True

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self.client and self._initialized:
            self.client.close()
            self._initialized = False

    async def __aenter__(self) -> "MongoDBManager":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def init_indexes(self) -> None:
        """Initialize database indexes."""
        await self.initialize()

        # Videos collection
        await self.videos.create_index("id", unique=True)
        await self.videos.create_index("channel_id")

        # Comments collection
        await self.comments.create_index("id", unique=True)
        await self.comments.create_index("video_id")

        # Analyses collection (one per video)
        await self.analyses.create_index("video_id", unique=True)
        await self.analyses.create_index("created_at")

        # Shares
        await self.shared_analyses.create_index("share_id", unique=True)
        await self.shared_analyses.create_index("video_id")

        await self.premium_interest.create_index("created_at")

    async def ping(self) -> None:
        """Round-trip to the server, raising on failure."""
        await self.initialize()
        await self.db.command("ping")

    # Videos

    async def get_video(self, video_id: str) -> VideoData | None:
        """Retrieve a video together with its comments.

        Args:
            video_id: YouTube video ID

        Returns:
            VideoData, or None if the video is not stored
        """
        await self.initialize()
        doc = await self.videos.find_one({"id": video_id})
        if doc is None:
            return None

        comments = await self.get_comments(video_id)
        return VideoData.model_validate({**_strip_id(doc), "comments": comments})

    async def create_video(self, video: Video) -> Video:
        """Insert a video.

        Raises:
            pymongo.errors.DuplicateKeyError: If the video ID already exists
        """
        await self.initialize()
        await self.videos.insert_one(video.model_dump_for_mongo())
        return video

    async def set_ingestion_status(self, video_id: str, status: str) -> bool:
        """Update the ingestion status of a stored video.

        Returns:
            True if a video was matched
        """
        await self.initialize()
        result = await self.videos.update_one(
            {"id": video_id}, {"$set": {"ingestion_status": status}}
        )
        return result.matched_count > 0

    # Comments

    async def get_comments(self, video_id: str) -> list[Comment]:
        """Comments for a video in insertion order."""
        await self.initialize()
        cursor = self.comments.find({"video_id": video_id}).sort("_id", 1)
        return [Comment.model_validate(_strip_id(doc)) async for doc in cursor]

    async def create_comments(self, comments: list[Comment]) -> list[Comment]:
        """Bulk insert comments, ignoring IDs that are already stored.

        Args:
            comments: Comments to insert; an empty list is a no-op

        Returns:
            The comments passed in
        """
        if not comments:
            return []

        await self.initialize()
        try:
            await self.comments.insert_many(
                [c.model_dump_for_mongo() for c in comments], ordered=False
            )
        except BulkWriteError as e:
            errors = e.details.get("writeErrors", [])
            if any(err.get("code") != DUPLICATE_KEY_ERROR_CODE for err in errors):
                raise
        return comments

    # Analyses

    async def get_analysis(self, video_id: str) -> VideoAnalysis | None:
        await self.initialize()
        doc = await self.analyses.find_one({"video_id": video_id})
        if doc is None:
            return None
        return VideoAnalysis.model_validate(_strip_id(doc))

    async def create_analysis(self, analysis: VideoAnalysis) -> VideoAnalysis:
        """Insert an analysis.

        Raises:
            pymongo.errors.DuplicateKeyError: If the video already has one
        """
        await self.initialize()
        await self.analyses.insert_one(analysis.model_dump_for_mongo())
        return analysis

    async def update_analysis(
        self, video_id: str, fields: dict[str, Any]
    ) -> VideoAnalysis | None:
        """Overwrite analysis fields and refresh ``created_at``.

        Args:
            video_id: YouTube video ID
            fields: Snake-case analysis fields to overwrite

        Returns:
            Updated analysis, or None if the video has no analysis
        """
        await self.initialize()
        update = {k: v for k, v in fields.items() if k not in ("video_id", "created_at")}
        # Same format pydantic writes for UTC datetimes
        update["created_at"] = utc_now().isoformat().replace("+00:00", "Z")

        doc = await self.analyses.find_one_and_update(
            {"video_id": video_id},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        return VideoAnalysis.model_validate(_strip_id(doc))

    async def list_analyzed_videos(
        self, limit: int = 20, offset: int = 0
    ) -> list[AnalyzedVideoSummary]:
        """List videos that have an analysis, newest analysis first."""
        await self.initialize()
        cursor = self.analyses.find({}).sort("created_at", -1).skip(offset).limit(limit)
        analyses = [doc async for doc in cursor]
        if not analyses:
            return []

        video_ids = [doc["video_id"] for doc in analyses]
        videos = {doc["id"]: doc async for doc in self.videos.find({"id": {"$in": video_ids}})}

        results = []
        for analysis in analyses:
            video = videos.get(analysis["video_id"])
            if video is None:
                continue
            results.append(
                AnalyzedVideoSummary(
                    video_id=video["id"],
                    title=video["title"],
                    channel_title=video["channel_title"],
                    published_at=video["published_at"],
                    thumbnail=video.get("thumbnail", ""),
                    view_count=video.get("view_count", 0),
                    comments_analyzed=analysis.get("comments_analyzed", 0),
                    analysis_date=analysis["created_at"],
                )
            )
        return results

    async def get_analysis_count(self) -> int:
        await self.initialize()
        return await self.analyses.count_documents({})

    # Shared analyses

    async def create_share(self, share: SharedAnalysis) -> SharedAnalysis:
        await self.initialize()
        await self.shared_analyses.insert_one(share.model_dump_for_mongo())
        return share

    async def get_share(self, share_id: str) -> SharedAnalysis | None:
        await self.initialize()
        doc = await self.shared_analyses.find_one({"share_id": share_id})
        if doc is None:
            return None
        return SharedAnalysis.model_validate(_strip_id(doc))

    async def increment_share_views(self, share_id: str) -> bool:
        await self.initialize()
        result = await self.shared_analyses.update_one(
            {"share_id": share_id}, {"$inc": {"views": 1}}
        )
        return result.matched_count > 0

    # Premium interest

    async def create_premium_interest(self, interest: PremiumInterest) -> PremiumInterest:
        await self.initialize()
        await self.premium_interest.insert_one(interest.model_dump_for_mongo())
        return interest


# Singleton instance for application-wide use
_db_manager: MongoDBManager | None = None


def get_db_manager() -> MongoDBManager:
    """Get or create the global database manager instance.

    Returns:
        MongoDBManager instance
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = MongoDBManager()
    return _db_manager

