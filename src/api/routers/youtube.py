"""YouTube video and comment analysis endpoints.

This module provides endpoints for:
- Fetching a video with its top comments (cached after the first request)
- Generating or reading the comment analysis of a video
- Listing analyzed videos
- Publishing an analysis under a share link
"""

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_analysis_service
from src.api.middleware.prometheus import record_analysis, record_video_lookup
from src.api.middleware.rate_limiter import enforce_rate_limit
from src.api.models.requests import (
    AnalysisResponse,
    AnalyzedVideosResponse,
    ShareRequest,
    ShareResponse,
    SummarizeRequest,
)
from src.api.security import APIKeyContext, validate_api_key
from src.core.constants import DEFAULT_LIMIT, DEFAULT_OFFSET, MAX_LIMIT, AnalysisOutcome
from src.core.exceptions import NotFoundError, UsageLimitError
from src.core.schemas import VideoAnalysis, VideoData
from src.pipeline.analysis import CommentAnalysisService
from src.youtube.client import normalize_video_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/youtube",
    tags=["youtube"],
    dependencies=[Depends(enforce_rate_limit)],
)


def _require_video_id(video_id: str) -> str:
    """Normalize a videoId parameter, rejecting blank values."""
    if not video_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="videoId parameter is required",
        )
    return normalize_video_id(video_id)


@router.get(
    "/video",
    response_model=VideoData,
    summary="Get video with comments",
    description=(
        "Return the video's metadata and top comments. The first request for a "
        "video fetches it from YouTube and caches it; later requests are served "
        "from the cache."
    ),
    operation_id="get_video",
    responses={
        400: {"description": "videoId missing or invalid"},
        403: {"description": "maxComments exceeds the subscription tier limit"},
        404: {"description": "Video not found on YouTube"},
        500: {"description": "YouTube or database failure"},
    },
)
async def get_video(
    video_id: str = Query(..., alias="videoId", description="YouTube video ID or URL"),
    max_comments: int | None = Query(
        default=None,
        alias="maxComments",
        gt=0,
        description="Number of comments to fetch (defaults to the tier default)",
    ),
    auth: APIKeyContext = Depends(validate_api_key),
    service: CommentAnalysisService = Depends(get_analysis_service),
) -> VideoData:
    """Get a video and its comments, fetching from YouTube on first request."""
    video_id = _require_video_id(video_id)

    try:
        video = await service.get_video(video_id, tier=auth.tier.value, max_comments=max_comments)
    except NotFoundError:
        record_video_lookup("not_found")
        raise
    except UsageLimitError:
        record_video_lookup("over_limit")
        raise
    except Exception:
        record_video_lookup("failed")
        raise

    record_video_lookup("served", comment_count=len(video.comments))
    return video


@router.post(
    "/summarize",
    response_model=AnalysisResponse,
    summary="Analyze video comments",
    description=(
        "Return the stored comment analysis of a video, generating it with the "
        "LLM on first request. The video must have been fetched with GET /video."
    ),
    operation_id="summarize_video",
    responses={
        400: {"description": "Invalid request body"},
        404: {"description": "Video has not been fetched"},
        409: {"description": "Comment ingestion for the video did not finish"},
        500: {"description": "Analysis generation or database failure"},
    },
)
async def summarize(
    body: SummarizeRequest,
    auth_ctx=Depends(validate_api_key),
    service: CommentAnalysisService = Depends(get_analysis_service),
) -> AnalysisResponse:
    """Generate or return the cached analysis for a video."""
    video_id = _require_video_id(body.video_id)

    start_time = time.perf_counter()
    try:
        result = await service.summarize(video_id, force_refresh=body.force_refresh)
    except Exception:
        record_analysis(AnalysisOutcome.FAILED, time.perf_counter() - start_time)
        raise

    record_analysis(result.outcome, time.perf_counter() - start_time)
    return AnalysisResponse(**result.analysis.model_dump(), from_cache=result.from_cache)


@router.get(
    "/analysis",
    response_model=VideoAnalysis,
    summary="Get stored analysis",
    operation_id="get_analysis",
    responses={404: {"description": "No analysis stored for the video"}},
)
async def get_analysis(
    video_id: str = Query(..., alias="videoId", description="YouTube video ID or URL"),
    auth_ctx=Depends(validate_api_key),
    service: CommentAnalysisService = Depends(get_analysis_service),
) -> VideoAnalysis:
    """Get the stored analysis of a video without generating one."""
    return await service.get_analysis(_require_video_id(video_id))


@router.get(
    "/videos",
    response_model=AnalyzedVideosResponse,
    summary="List analyzed videos",
    description="Analyzed videos, newest analysis first.",
    operation_id="list_analyzed_videos",
)
async def list_analyzed_videos(
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    offset: int = Query(default=DEFAULT_OFFSET, ge=0),
    auth_ctx=Depends(validate_api_key),
    service: CommentAnalysisService = Depends(get_analysis_service),
) -> AnalyzedVideosResponse:
    """List analyzed videos with pagination."""
    videos = await service.list_analyzed_videos(limit=limit, offset=offset)
    total = await service.count_analyzed_videos()
    return AnalyzedVideosResponse(videos=videos, total=total, limit=limit, offset=offset)


@router.post(
    "/share",
    response_model=ShareResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Share an analysis",
    operation_id="share_analysis",
    responses={404: {"description": "No analysis stored for the video"}},
)
async def share_analysis(
    body: ShareRequest,
    auth_ctx=Depends(validate_api_key),
    service: CommentAnalysisService = Depends(get_analysis_service),
) -> ShareResponse:
    """Create a public share link for a stored analysis."""
    share = await service.share_analysis(_require_video_id(body.video_id), username=body.username)
    logger.info(f"Analysis for {share.video_id} shared as {share.share_id}")

    return ShareResponse(
        share_id=share.share_id,
        video_id=share.video_id,
        username=share.username,
        created_at=share.created_at,
        url=service.share_url(share.share_id),
    )
