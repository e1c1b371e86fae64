"""Security module for API key authentication and subscription tiers.

This module provides:
- API key models with metadata
- API key validation against hashed keys
- Subscription tier lookup per key
- Authentication dependencies for route handlers
"""

import hashlib
import logging
import secrets
from datetime import datetime, timezone
from enum import Enum

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from src.core.config import get_settings

logger = logging.getLogger(__name__)

# Security scheme
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


class SubscriptionTier(str, Enum):
    """Subscription tiers, selecting comment and rate limits."""

    FREE = "free"
    PRO = "pro"
    PREMIUM = "premium"

    @classmethod
    def parse(
        cls, value: str | None, default: "SubscriptionTier | None" = None
    ) -> "SubscriptionTier":
        """Parse a tier name, falling back to ``default`` (or FREE)."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return default or cls.FREE


class APIKey(BaseModel):
    """API key model with metadata.

    Attributes:
        key: The API key hash
        name: Human-readable name for the key
        created_at: When the key was created
        tier: Subscription tier for this key
        is_active: Whether the key is currently active
    """

    key: str = Field(..., description="API key (hashed for storage)")
    name: str = Field(..., description="Human-readable name")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp",
    )
    tier: SubscriptionTier = Field(default=SubscriptionTier.FREE, description="Subscription tier")
    is_active: bool = Field(default=True, description="Whether key is active")


class APIKeyContext(BaseModel):
    """Context information for an API request.

    Anonymous requests get a context too, carrying the default tier.

    Attributes:
        api_key: The API key used for authentication (masked)
        key_name: Human-readable name of the key
        tier: Subscription tier for this request
        key_hash: Hash prefix identifying the key
    """

    api_key: str | None = Field(default=None, description="API key (masked for logging)")
    key_name: str = Field(default="anonymous", description="Key name")
    tier: SubscriptionTier = Field(default=SubscriptionTier.FREE, description="Subscription tier")
    key_hash: str | None = Field(default=None, description="SHA256 hash prefix of the key")

    @property
    def is_authenticated(self) -> bool:
        return self.api_key is not None


class APIKeyValidator:
    """Validate API keys and resolve their subscription tier.

    Keys are held as SHA-256 hashes, so a plain key never needs to stay in
    memory after startup.

    Usage:
        validator = APIKeyValidator(valid_keys=["key1"], key_tiers={"key1": "pro"})
        validator.validate("key1")  # True
        validator.get_tier("key1")  # SubscriptionTier.PRO
    """

    def __init__(
        self,
        valid_keys: list[str] | None = None,
        key_tiers: dict[str, str] | None = None,
        required: bool = False,
        default_tier: str | None = None,
    ) -> None:
        """Initialize API key validator.

        Args:
            valid_keys: List of valid API keys. If None, uses settings.
            key_tiers: Map of API key to tier name. If None, uses settings.
            required: Whether an API key is required
            default_tier: Tier for anonymous requests and keys without a tier
        """
        settings = get_settings()

        if valid_keys is None:
            valid_keys = settings.parsed_api_keys
        if key_tiers is None:
            key_tiers = settings.auth_key_tiers

        self.required = required
        self.default_tier = SubscriptionTier.parse(default_tier or settings.auth_default_tier)

        self._key_metadata: dict[str, APIKey] = {}
        for key in list(valid_keys) + [k for k in key_tiers if k not in valid_keys]:
            key_hash = hash_api_key(key)
            self._key_metadata[key_hash] = APIKey(
                key=key_hash,
                name=f"key-{key_hash[:8]}",
                tier=SubscriptionTier.parse(key_tiers.get(key), self.default_tier),
            )

    def validate(self, api_key: str) -> bool:
        """Check that a key is known and active."""
        metadata = self.get_key_metadata(api_key)
        return metadata is not None and metadata.is_active

    def get_key_metadata(self, api_key: str) -> APIKey | None:
        if not api_key:
            return None
        return self._key_metadata.get(hash_api_key(api_key))

    def get_tier(self, api_key: str | None) -> SubscriptionTier:
        """Tier for a key, or the default tier for unknown/missing keys."""
        metadata = self.get_key_metadata(api_key) if api_key else None
        return metadata.tier if metadata else self.default_tier

    async def __call__(
        self,
        request: Request,
        api_key: str | None = Security(API_KEY_HEADER),
    ) -> APIKeyContext:
        """Validate API key from request.

        Returns:
            APIKeyContext; anonymous (default tier) when no key is sent and
            keys are not required

        Raises:
            HTTPException: If API key is invalid, or missing while required
        """
        if not api_key:
            if self.required:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="API key is required",
                    headers={"WWW-Authenticate": "ApiKey"},
                )
            return APIKeyContext(tier=self.default_tier)

        if not self.validate(api_key):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid API key",
                headers={"WWW-Authenticate": "ApiKey"},
            )

        metadata = self.get_key_metadata(api_key)
        key_hash = hash_api_key(api_key)

        context = APIKeyContext(
            api_key=mask_api_key(api_key),
            key_name=metadata.name if metadata else "Unknown",
            tier=metadata.tier if metadata else self.default_tier,
            key_hash=key_hash[:16],
        )

        # Log successful authentication (without the key)
        logger.debug(
            "API key authenticated",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "key_hash": key_hash[:16],
                "tier": context.tier.value,
            },
        )

        return context


# Global validator instance (configured via environment)
_api_key_validator: APIKeyValidator | None = None


def get_api_key_validator() -> APIKeyValidator:
    """Get or create the global API key validator."""
    global _api_key_validator
    if _api_key_validator is None:
        settings = get_settings()
        _api_key_validator = APIKeyValidator(required=settings.auth_require_key)
    return _api_key_validator


def reset_api_key_validator() -> None:
    """Drop the global validator so it is rebuilt from current settings."""
    global _api_key_validator
    _api_key_validator = None


async def validate_api_key(
    request: Request,
    api_key: str | None = Security(API_KEY_HEADER),
) -> APIKeyContext:
    """Dependency resolving the caller's key and subscription tier.

    Example:
        @router.get("/video")
        async def get_video(ctx: APIKeyContext = Depends(validate_api_key)):
            tier = ctx.tier
            ...
    """
    validator = get_api_key_validator()
    return await validator(request, api_key)


def generate_api_key() -> str:
    """Generate a new secure API key."""
    return secrets.token_urlsafe(32)


def hash_api_key(api_key: str) -> str:
    """Hash an API key for secure storage.

    Args:
        api_key: Plain text API key

    Returns:
        SHA-256 hash of the key
    """
    return hashlib.sha256(api_key.encode()).hexdigest()


def mask_api_key(api_key: str) -> str:
    """Mask API key for logging/display.

    Args:
        api_key: Plain text API key

    Returns:
        Masked key (e.g., "sk_...abc123")
    """
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}...{api_key[-4:]}"
