"""FastAPI dependencies for the API module."""

from fastapi import Request

from src.core.exceptions import PipelineError
from src.pipeline.analysis import CommentAnalysisService


def get_analysis_service(request: Request) -> CommentAnalysisService:
    """Dependency to get the service built at startup.

    Returns:
        CommentAnalysisService: The application's analysis service

    Raises:
        PipelineError: If the application started without a service
    """
    service = getattr(request.app.state, "analysis_service", None)
    if service is None:
        raise PipelineError("Analysis service is not initialized")
    return service  # type: ignore[no-any-return]
