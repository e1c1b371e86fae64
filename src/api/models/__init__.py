"""API models module."""

from src.api.models.requests import (
    AnalysisResponse,
    AnalyzedVideosResponse,
    PremiumInterestRequest,
    PremiumInterestResponse,
    SharedAnalysisResponse,
    ShareRequest,
    ShareResponse,
    SummarizeRequest,
)

__all__ = [
    "AnalysisResponse",
    "AnalyzedVideosResponse",
    "PremiumInterestRequest",
    "PremiumInterestResponse",
    "SharedAnalysisResponse",
    "ShareRequest",
    "ShareResponse",
    "SummarizeRequest",
]
