"""YouTube Data API v3 client for video metadata and top-level comments."""

import logging
import re
from datetime import datetime
from typing import Any

import httpx

from src.core.config import Settings, get_settings
from src.core.constants import (
    ANONYMOUS_AUTHOR,
    THUMBNAIL_PREFERENCE,
    YOUTUBE_COMMENT_PAGE_SIZE,
)
from src.core.exceptions import VideoNotFoundError, YouTubeAPIError
from src.core.schemas import Comment, VideoMetadata, utc_now

logger = logging.getLogger(__name__)

YOUTUBE_ID_PATTERNS = [
    r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/"
    r"|youtube\.com/shorts/|youtube\.com/live/)([a-zA-Z0-9_-]{11})",
    r"^([a-zA-Z0-9_-]{11})$",  # Just the ID
]


def extract_video_id(source: str) -> str:
    """
    Extract the video ID from a YouTube URL or bare ID.

    Raises:
        ValueError: If no video ID can be found
    """
    source = source.strip()
    for pattern in YOUTUBE_ID_PATTERNS:
        match = re.search(pattern, source)
        if match:
            return match.group(1)

    raise ValueError(f"Not a YouTube video URL or ID: {source}")


def normalize_video_id(value: str) -> str:
    """Return the ID from a URL, or the value unchanged if it is not one."""
    try:
        return extract_video_id(value)
    except ValueError:
        return value.strip()


def select_thumbnail(thumbnails: dict[str, Any] | None) -> str:
    """Pick the highest resolution thumbnail URL, or "" if none."""
    thumbnails = thumbnails or {}
    for size in THUMBNAIL_PREFERENCE:
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return ""


def parse_count(value: Any) -> int:
    """Parse a statistics counter, treating missing or malformed values as 0."""
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _parse_timestamp(value: str | None) -> datetime:
    if not value:
        return utc_now()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return utc_now()


class YouTubeDataClient:
    """Async client for the videos and commentThreads endpoints.

    Each call is a single upstream attempt; failures surface as
    ``YouTubeAPIError`` and are never retried here.
    """

    def __init__(
        self,
        api_key: str | None = None,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else self.settings.youtube_api_key
        self._client = http_client or httpx.AsyncClient(
            base_url=self.settings.youtube_api_base_url,
            timeout=self.settings.youtube_api_timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """Call an API endpoint and return the decoded body."""
        try:
            response = await self._client.get(endpoint, params={**params, "key": self.api_key})
        except httpx.HTTPError as e:
            raise YouTubeAPIError(f"YouTube API request failed: {e}") from e

        if response.status_code >= 400:
            raise self._error_from_response(response)

        try:
            return response.json()
        except ValueError as e:
            raise YouTubeAPIError("YouTube API returned invalid JSON") from e

    @staticmethod
    def _error_from_response(response: httpx.Response) -> YouTubeAPIError:
        """Build an error from a Google API error body."""
        message = f"YouTube API error: HTTP {response.status_code}"
        reason = None
        try:
            error = response.json().get("error", {})
            if error.get("message"):
                message = error["message"]
            errors = error.get("errors") or []
            if errors:
                reason = errors[0].get("reason")
        except (ValueError, AttributeError):
            pass

        return YouTubeAPIError(message, status_code=response.status_code, reason=reason)

    async def get_video_metadata(self, video_id: str) -> VideoMetadata:
        """
        Fetch snippet and statistics for a video.

        Raises:
            VideoNotFoundError: If YouTube returns no such video
            YouTubeAPIError: On any other upstream failure
        """
        logger.debug(f"Fetching metadata for {video_id}")
        data = await self._get("videos", {"part": "snippet,statistics", "id": video_id})

        items = data.get("items") or []
        if not items:
            raise VideoNotFoundError()

        item = items[0]
        snippet = item.get("snippet", {})
        statistics = item.get("statistics", {})

        return VideoMetadata(
            id=item.get("id", video_id),
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            channel_id=snippet.get("channelId", ""),
            channel_title=snippet.get("channelTitle", ""),
            published_at=_parse_timestamp(snippet.get("publishedAt")),
            thumbnail=select_thumbnail(snippet.get("thumbnails")),
            view_count=parse_count(statistics.get("viewCount")),
            like_count=parse_count(statistics.get("likeCount")),
            comment_count=parse_count(statistics.get("commentCount")),
        )

    async def get_comments(self, video_id: str, max_comments: int = 100) -> list[Comment]:
        """
        Fetch top-level comments ordered by relevance.

        Pages are requested one after another until ``max_comments`` are
        collected or YouTube stops returning a next page token. A failed page
        fails the whole call; comments from earlier pages are discarded.

        Returns:
            At most ``max_comments`` comments in upstream order. Empty when
            comments are disabled on the video.
        """
        comments: list[Comment] = []
        next_page_token = None
        pages_fetched = 0

        while len(comments) < max_comments:
            params: dict[str, Any] = {
                "part": "snippet",
                "videoId": video_id,
                "maxResults": min(YOUTUBE_COMMENT_PAGE_SIZE, max_comments - len(comments)),
                "order": "relevance",
            }
            if next_page_token:
                params["pageToken"] = next_page_token

            try:
                response = await self._get("commentThreads", params)
            except YouTubeAPIError as e:
                if pages_fetched == 0 and e.reason == "commentsDisabled":
                    logger.info(f"Comments disabled for video {video_id}")
                    return []
                raise
            pages_fetched += 1

            items = response.get("items") or []
            for item in items:
                comment = self._parse_comment(item, video_id)
                if comment is not None:
                    comments.append(comment)

            next_page_token = response.get("nextPageToken")
            if not next_page_token or not items:
                break

        logger.debug(f"Fetched {len(comments)} comments for {video_id} in {pages_fetched} pages")
        return comments[:max_comments]

    @staticmethod
    def _parse_comment(item: dict[str, Any], video_id: str) -> Comment | None:
        """Convert a commentThread item, skipping items without a top-level snippet."""
        top_level = (item.get("snippet") or {}).get("topLevelComment") or {}
        snippet = top_level.get("snippet")
        if not snippet:
            return None

        return Comment(
            id=top_level.get("id") or item.get("id", ""),
            video_id=video_id,
            author_display_name=snippet.get("authorDisplayName") or ANONYMOUS_AUTHOR,
            author_profile_image_url=snippet.get("authorProfileImageUrl"),
            author_channel_id=(snippet.get("authorChannelId") or {}).get("value"),
            text_display=snippet.get("textDisplay", ""),
            text_original=snippet.get("textOriginal", ""),
            like_count=parse_count(snippet.get("likeCount")),
            published_at=_parse_timestamp(snippet.get("publishedAt")),
            updated_at=_parse_timestamp(snippet.get("updatedAt")),
        )
