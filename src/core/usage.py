"""Subscription tier usage policy.

Each tier caps how many comments are ingested per video. The policy is built
from settings once and consulted by the analysis service before ingestion.
"""

from dataclasses import dataclass, field

from src.core.config import Settings
from src.core.constants import SUBSCRIPTION_TIERS, UNLIMITED
from src.core.exceptions import UsageLimitError


@dataclass
class UsagePolicy:
    """Per-tier comment limits."""

    comment_limits: dict[str, int] = field(
        default_factory=lambda: {
            "free": 100,
            "pro": 1000,
            "premium": UNLIMITED,
        }
    )
    default_max_comments: int = 100
    unlimited_ceiling: int = 10000
    default_tier: str = "free"

    @classmethod
    def from_settings(cls, settings: Settings) -> "UsagePolicy":
        return cls(
            comment_limits=dict(settings.tier_comment_limits),
            default_max_comments=settings.youtube_default_max_comments,
            unlimited_ceiling=settings.tier_unlimited_ceiling,
            default_tier=settings.auth_default_tier,
        )

    def normalize_tier(self, tier: str | None) -> str:
        """Map unknown or missing tiers to the default tier."""
        if tier and tier.lower() in self.comment_limits:
            return tier.lower()
        return self.default_tier

    def limit_for(self, tier: str | None) -> int:
        """Maximum comments per video for a tier (-1 means unlimited)."""
        return self.comment_limits.get(self.normalize_tier(tier), self.default_max_comments)

    def is_unlimited(self, tier: str | None) -> bool:
        return self.limit_for(tier) == UNLIMITED

    def can_analyze(self, tier: str | None, comment_count: int) -> bool:
        """Check whether a tier may ingest ``comment_count`` comments."""
        limit = self.limit_for(tier)
        return limit == UNLIMITED or comment_count <= limit

    def upgrade_message(self, tier: str | None, comment_count: int) -> str:
        """Explain which tier is needed for ``comment_count`` comments."""
        tier = self.normalize_tier(tier)
        limit = self.limit_for(tier)
        if self.can_analyze(tier, comment_count):
            return ""

        # Cheapest tier that covers the request
        for candidate in SUBSCRIPTION_TIERS:
            if candidate == tier or not self.can_analyze(candidate, comment_count):
                continue
            candidate_limit = self.limit_for(candidate)
            capacity = (
                "unlimited comments"
                if candidate_limit == UNLIMITED
                else f"up to {candidate_limit} comments"
            )
            return (
                f"The {tier} tier analyzes up to {limit} comments per video. "
                f"Upgrade to {candidate} to analyze {capacity}."
            )

        return f"The {tier} tier analyzes up to {limit} comments per video."

    def resolve_max_comments(self, tier: str | None, requested: int | None = None) -> int:
        """
        Decide how many comments to ingest for a request.

        Args:
            tier: Caller's subscription tier
            requested: Explicit comment count, or None for the default

        Returns:
            Comment cap to pass to the ingestion client

        Raises:
            UsageLimitError: If ``requested`` exceeds the tier limit
        """
        limit = self.limit_for(tier)
        ceiling = self.unlimited_ceiling if limit == UNLIMITED else limit

        if requested is None:
            return min(self.default_max_comments, ceiling)

        if not self.can_analyze(tier, requested):
            raise UsageLimitError(self.upgrade_message(tier, requested))

        return min(requested, ceiling)
