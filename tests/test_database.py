"""Tests for the MongoDB manager with mocked Motor collections.

These tests verify:
- Documents map to and from the pydantic schemas (snake_case, no _id)
- Duplicate comments are ignored on bulk insert
- Analysis overwrite refreshes created_at
- The analyzed videos listing joins analyses with their videos
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import BulkWriteError

from src.core.schemas import Video
from src.database.manager import MongoDBManager
from tests.conftest import TEST_VIDEO_ID, make_comment, make_metadata


class FakeCursor:
    """Async cursor over a fixed list of documents."""

    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self.docs = docs
        self.calls: list[tuple[str, Any]] = []

    def sort(self, *args: Any) -> "FakeCursor":
        self.calls.append(("sort", args))
        return self

    def skip(self, count: int) -> "FakeCursor":
        self.calls.append(("skip", count))
        return self

    def limit(self, count: int) -> "FakeCursor":
        self.calls.append(("limit", count))
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self.docs:
            yield doc


def make_collection() -> MagicMock:
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.insert_many = AsyncMock()
    collection.update_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    collection.create_index = AsyncMock()
    collection.find = MagicMock(return_value=FakeCursor([]))
    return collection


@pytest.fixture
def db(settings) -> MongoDBManager:
    manager = MongoDBManager(settings=settings)
    manager.db = MagicMock()
    manager.db.command = AsyncMock(return_value={"ok": 1})
    manager.videos = make_collection()
    manager.comments = make_collection()
    manager.analyses = make_collection()
    manager.shared_analyses = make_collection()
    manager.premium_interest = make_collection()
    manager._initialized = True
    return manager


def video_doc(**overrides: Any) -> dict[str, Any]:
    doc = {"_id": "oid", **make_metadata().model_dump_for_mongo(), "ingestion_status": "complete"}
    doc.update(overrides)
    return doc


def analysis_doc(video_id: str = TEST_VIDEO_ID, **overrides: Any) -> dict[str, Any]:
    doc = {
        "_id": "oid",
        "video_id": video_id,
        "sentiment_stats": {"positive": 50, "neutral": 30, "negative": 20},
        "key_points": [{"title": "Theme", "content": "Details"}],
        "comprehensive": "Summary",
        "comments_analyzed": 2,
        "created_at": "2024-02-01T00:00:00Z",
    }
    doc.update(overrides)
    return doc


class TestVideos:
    async def test_get_missing_video(self, db: MongoDBManager) -> None:
        assert await db.get_video(TEST_VIDEO_ID) is None
        db.comments.find.assert_not_called()

    async def test_get_video_with_comments(self, db: MongoDBManager) -> None:
        """
        Given: A stored video document and two comment documents
        When: Getting the video
        Then: VideoData is returned with its comments and without _id
        """
        db.videos.find_one.return_value = video_doc()
        comment_docs = [
            {"_id": f"oid{i}", **make_comment(i).model_dump_for_mongo()} for i in (1, 2)
        ]
        cursor = FakeCursor(comment_docs)
        db.comments.find.return_value = cursor

        video = await db.get_video(TEST_VIDEO_ID)

        assert video is not None
        assert video.id == TEST_VIDEO_ID
        assert video.ingestion_status == "complete"
        assert [c.id for c in video.comments] == [d["id"] for d in comment_docs]
        db.comments.find.assert_called_once_with({"video_id": TEST_VIDEO_ID})
        assert ("sort", ("_id", 1)) in cursor.calls

    async def test_create_video_stores_snake_case(self, db: MongoDBManager) -> None:
        video = Video(**make_metadata().model_dump(), ingestion_status="pending")

        await db.create_video(video)

        doc = db.videos.insert_one.await_args.args[0]
        assert doc["channel_title"] == "Test Channel"
        assert doc["ingestion_status"] == "pending"
        assert "channelTitle" not in doc

    async def test_set_ingestion_status(self, db: MongoDBManager) -> None:
        db.videos.update_one.return_value = MagicMock(matched_count=1)

        assert await db.set_ingestion_status(TEST_VIDEO_ID, "complete") is True
        db.videos.update_one.assert_awaited_once_with(
            {"id": TEST_VIDEO_ID}, {"$set": {"ingestion_status": "complete"}}
        )


class TestComments:
    async def test_empty_insert_is_noop(self, db: MongoDBManager) -> None:
        assert await db.create_comments([]) == []
        db.comments.insert_many.assert_not_awaited()

    async def test_duplicates_are_ignored(self, db: MongoDBManager) -> None:
        db.comments.insert_many.side_effect = BulkWriteError(
            {"writeErrors": [{"code": 11000, "errmsg": "duplicate key"}]}
        )
        comments = [make_comment(1), make_comment(2)]

        assert await db.create_comments(comments) == comments
        assert db.comments.insert_many.await_args.kwargs["ordered"] is False

    async def test_other_bulk_errors_raise(self, db: MongoDBManager) -> None:
        db.comments.insert_many.side_effect = BulkWriteError(
            {"writeErrors": [{"code": 11000}, {"code": 121, "errmsg": "validation"}]}
        )

        with pytest.raises(BulkWriteError):
            await db.create_comments([make_comment(1)])


class TestAnalyses:
    async def test_get_analysis(self, db: MongoDBManager) -> None:
        db.analyses.find_one.return_value = analysis_doc()

        analysis = await db.get_analysis(TEST_VIDEO_ID)

        assert analysis is not None
        assert analysis.sentiment_stats.positive == 50
        assert analysis.key_points[0].title == "Theme"

    async def test_update_analysis_refreshes_created_at(self, db: MongoDBManager) -> None:
        """
        Given: New analysis fields including video_id and created_at
        When: Overwriting the stored analysis
        Then: video_id is not changed and created_at is set to now
        """
        db.analyses.find_one_and_update.return_value = analysis_doc(comprehensive="New")

        updated = await db.update_analysis(
            TEST_VIDEO_ID,
            {"comprehensive": "New", "video_id": "other", "created_at": "2000-01-01T00:00:00Z"},
        )

        assert updated is not None
        assert updated.comprehensive == "New"
        update = db.analyses.find_one_and_update.await_args.args[1]["$set"]
        assert "video_id" not in update
        assert update["created_at"] != "2000-01-01T00:00:00Z"
        assert update["created_at"].endswith("Z")

    async def test_update_missing_analysis(self, db: MongoDBManager) -> None:
        assert await db.update_analysis(TEST_VIDEO_ID, {"comprehensive": "x"}) is None

    async def test_list_analyzed_videos(self, db: MongoDBManager) -> None:
        """
        Given: Two analyses, one whose video document is missing
        When: Listing analyzed videos
        Then: Only the analysis with a video is returned, joined with its metadata
        """
        analyses_cursor = FakeCursor([analysis_doc(), analysis_doc(video_id="orphan00000")])
        db.analyses.find.return_value = analyses_cursor
        db.videos.find.return_value = FakeCursor([video_doc()])

        rows = await db.list_analyzed_videos(limit=5, offset=10)

        assert len(rows) == 1
        assert rows[0].video_id == TEST_VIDEO_ID
        assert rows[0].title == "Test Video Title"
        assert rows[0].comments_analyzed == 2
        assert analyses_cursor.calls == [("sort", ("created_at", -1)), ("skip", 10), ("limit", 5)]

    async def test_list_empty(self, db: MongoDBManager) -> None:
        assert await db.list_analyzed_videos() == []
        db.videos.find.assert_not_called()

    async def test_count(self, db: MongoDBManager) -> None:
        db.analyses.count_documents.return_value = 3

        assert await db.get_analysis_count() == 3


class TestShares:
    async def test_get_share(self, db: MongoDBManager) -> None:
        db.shared_analyses.find_one.return_value = {
            "_id": "oid",
            "share_id": "abc",
            "video_id": TEST_VIDEO_ID,
            "username": None,
            "created_at": "2024-02-01T00:00:00Z",
            "views": 4,
        }

        share = await db.get_share("abc")

        assert share is not None
        assert share.views == 4

    async def test_increment_views(self, db: MongoDBManager) -> None:
        db.shared_analyses.update_one.return_value = MagicMock(matched_count=0)

        assert await db.increment_share_views("missing") is False
        db.shared_analyses.update_one.assert_awaited_once_with(
            {"share_id": "missing"}, {"$inc": {"views": 1}}
        )


class TestIndexes:
    async def test_unique_indexes(self, db: MongoDBManager) -> None:
        await db.init_indexes()

        db.videos.create_index.assert_any_await("id", unique=True)
        db.comments.create_index.assert_any_await("id", unique=True)
        db.analyses.create_index.assert_any_await("video_id", unique=True)
        db.shared_analyses.create_index.assert_any_await("share_id", unique=True)

    async def test_ping(self, db: MongoDBManager) -> None:
        await db.ping()

        db.db.command.assert_awaited_once_with("ping")
