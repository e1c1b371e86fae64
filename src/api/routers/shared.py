"""Public access to shared analyses."""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_analysis_service
from src.api.middleware.rate_limiter import enforce_rate_limit
from src.api.models.requests import SharedAnalysisResponse
from src.api.security import validate_api_key
from src.pipeline.analysis import CommentAnalysisService

router = APIRouter(
    prefix="/shared",
    tags=["shared"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.get(
    "/analysis/{share_id}",
    response_model=SharedAnalysisResponse,
    summary="Get shared analysis",
    description="Resolve a share link to the video and its analysis. Each call counts a view.",
    operation_id="get_shared_analysis",
    responses={404: {"description": "Unknown share link"}},
)
async def get_shared_analysis(
    share_id: str,
    auth_ctx=Depends(validate_api_key),
    service: CommentAnalysisService = Depends(get_analysis_service),
) -> SharedAnalysisResponse:
    view = await service.get_shared_analysis(share_id)
    return SharedAnalysisResponse(
        share_id=view.share.share_id,
        video_data=view.video,
        analysis_data=view.analysis,
        shared_by=view.share.username,
        created_at=view.share.created_at,
        views=view.share.views,
    )
