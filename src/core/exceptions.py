"""Custom exceptions for the comment analysis pipeline."""

from src.core.constants import ErrorCodes


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    error_code = ErrorCodes.INTERNAL_ERROR


class NotFoundError(PipelineError):
    """A requested resource does not exist."""

    error_code = ErrorCodes.NOT_FOUND


class VideoNotFoundError(NotFoundError):
    """Video is unknown to the store or to YouTube."""

    error_code = ErrorCodes.VIDEO_NOT_FOUND

    def __init__(self, message: str = "Video not found"):
        super().__init__(message)


class AnalysisNotFoundError(NotFoundError):
    """No analysis has been generated for the video yet."""

    error_code = ErrorCodes.ANALYSIS_NOT_FOUND

    def __init__(self, message: str = "Analysis not found"):
        super().__init__(message)


class ShareNotFoundError(NotFoundError):
    """Share link does not exist."""

    error_code = ErrorCodes.SHARE_NOT_FOUND

    def __init__(self, message: str = "Shared analysis not found"):
        super().__init__(message)


class UpstreamError(PipelineError):
    """An upstream service call failed."""

    error_code = ErrorCodes.EXTERNAL_SERVICE_ERROR


class YouTubeAPIError(UpstreamError):
    """YouTube Data API request failed."""

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class GenerationError(PipelineError):
    """Analysis generation failed."""

    error_code = ErrorCodes.GENERATION_ERROR


class SchemaValidationError(GenerationError):
    """LLM output failed schema validation."""


class UsageLimitError(PipelineError):
    """Request exceeds the caller's subscription tier."""

    error_code = ErrorCodes.USAGE_LIMIT_EXCEEDED


class IngestionIncompleteError(PipelineError):
    """Video ingestion has not finished, comments may be missing."""

    error_code = ErrorCodes.INGESTION_INCOMPLETE
