"""Premium tier interest registration."""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_analysis_service
from src.api.middleware.rate_limiter import enforce_rate_limit
from src.api.models.requests import PremiumInterestRequest, PremiumInterestResponse
from src.api.security import validate_api_key
from src.pipeline.analysis import CommentAnalysisService

router = APIRouter(
    prefix="/premium",
    tags=["premium"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.post(
    "/register-interest",
    response_model=PremiumInterestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register premium interest",
    description="Record an email address interested in a higher comment limit.",
    operation_id="register_premium_interest",
    responses={400: {"description": "Invalid email or comment count"}},
)
async def register_interest(
    body: PremiumInterestRequest,
    auth_ctx=Depends(validate_api_key),
    service: CommentAnalysisService = Depends(get_analysis_service),
) -> PremiumInterestResponse:
    await service.register_premium_interest(body.email, body.comment_count)
    return PremiumInterestResponse()
