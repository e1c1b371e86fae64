"""Pipeline orchestration module."""

from src.pipeline.analysis import (
    CommentAnalysisService,
    SharedAnalysisView,
    SummarizeResult,
    build_analysis_service,
)
from src.pipeline.locks import KeyedLocks

__all__ = [
    "CommentAnalysisService",
    "KeyedLocks",
    "SharedAnalysisView",
    "SummarizeResult",
    "build_analysis_service",
]
