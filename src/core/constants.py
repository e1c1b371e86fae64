"""Application constants and metadata.

This module centralizes all application-wide constants for:
- Application metadata
- Error codes
- YouTube and analysis defaults
"""

from datetime import datetime, timezone

# Application start time (for uptime calculation)
START_TIME = datetime.now(timezone.utc)

# =============================================================================
# Application Metadata
# =============================================================================

APP_NAME = "YouTube Comment Insight API"
APP_DESCRIPTION = """
API for analyzing the comment sections of YouTube videos.

## Features

- **Video Lookup**: Fetch video metadata and top comments, cached after the first request
- **Comment Analysis**: Sentiment breakdown, key points and a written summary per video
- **Sharing**: Publish an analysis under a share link
- **Premium Interest**: Register interest in higher comment limits

## Authentication

An API key passed via the `X-API-Key` header selects the subscription tier.
Requests without a key use the free tier.

## Rate Limiting

API requests are rate-limited per key or client address.
"""
APP_VERSION = "1.0.0"

# =============================================================================
# API Configuration
# =============================================================================

API_PREFIX = "/api"

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_OFFSET = 0

# =============================================================================
# OpenAPI Configuration
# =============================================================================

OPENAPI_TITLE = APP_NAME
OPENAPI_VERSION = APP_VERSION

LICENSE_INFO = {
    "name": "MIT",
    "url": "https://opensource.org/licenses/MIT",
}

# =============================================================================
# API Tags and Descriptions
# =============================================================================

API_TAGS = [
    {
        "name": "youtube",
        "description": "Video lookup and comment analysis endpoints.",
    },
    {
        "name": "shared",
        "description": "Public access to shared analyses.",
    },
    {
        "name": "premium",
        "description": "Premium tier interest registration.",
    },
    {
        "name": "health",
        "description": "Health check and monitoring endpoints.",
    },
]

# =============================================================================
# Error Code Constants
# =============================================================================


class ErrorCodes:
    """Standardized error codes for consistent error handling."""

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # Not found errors (404)
    NOT_FOUND = "NOT_FOUND"
    VIDEO_NOT_FOUND = "VIDEO_NOT_FOUND"
    ANALYSIS_NOT_FOUND = "ANALYSIS_NOT_FOUND"
    SHARE_NOT_FOUND = "SHARE_NOT_FOUND"

    # Authentication errors (401-403)
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    USAGE_LIMIT_EXCEEDED = "USAGE_LIMIT_EXCEEDED"

    # Conflicts (409)
    INGESTION_INCOMPLETE = "INGESTION_INCOMPLETE"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    GENERATION_ERROR = "GENERATION_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"


# =============================================================================
# HTTP Status Code Mappings
# =============================================================================

ERROR_CODE_TO_STATUS = {
    ErrorCodes.VALIDATION_ERROR: 400,
    ErrorCodes.MISSING_REQUIRED_FIELD: 400,
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.VIDEO_NOT_FOUND: 404,
    ErrorCodes.ANALYSIS_NOT_FOUND: 404,
    ErrorCodes.SHARE_NOT_FOUND: 404,
    ErrorCodes.AUTHENTICATION_ERROR: 401,
    ErrorCodes.USAGE_LIMIT_EXCEEDED: 403,
    ErrorCodes.INGESTION_INCOMPLETE: 409,
    ErrorCodes.RATE_LIMIT_EXCEEDED: 429,
    ErrorCodes.INTERNAL_ERROR: 500,
    ErrorCodes.DATABASE_ERROR: 500,
    ErrorCodes.GENERATION_ERROR: 500,
    # Upstream failures surface as 500 with the upstream message
    ErrorCodes.EXTERNAL_SERVICE_ERROR: 500,
}

# =============================================================================
# YouTube Constants
# =============================================================================

# Largest page the commentThreads endpoint accepts
YOUTUBE_COMMENT_PAGE_SIZE = 100

# Most to least preferred
THUMBNAIL_PREFERENCE = ["maxres", "standard", "high", "medium", "default"]

ANONYMOUS_AUTHOR = "Anonymous"

# =============================================================================
# Ingestion Status Constants
# =============================================================================


class IngestionStatus:
    """Ingestion states of a stored video."""

    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"


# =============================================================================
# Subscription Tiers
# =============================================================================

# Cheapest first
SUBSCRIPTION_TIERS = ["free", "pro", "premium"]

UNLIMITED = -1

# =============================================================================
# Analysis Constants
# =============================================================================


class AnalysisOutcome:
    """How a summarize request was served (metric label values)."""

    CACHE_HIT = "cache_hit"
    GENERATED = "generated"
    NO_COMMENTS = "no_comments"
    FAILED = "failed"


NO_COMMENTS_KEY_POINT_TITLE = "No Comments Available"
NO_COMMENTS_KEY_POINT_CONTENT = (
    "This video either has comments disabled or no comments have been posted yet."
)
NO_COMMENTS_SUMMARY = (
    "No comments were found for this video. The video creator may have disabled "
    "comments, or the video may be too recent to have received any comments. "
    "Without comments, we cannot provide a comprehensive analysis of viewer feedback."
)
