"""Configuration settings for the Comment Insight service."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and config.yaml."""

    model_config = SettingsConfigDict(  # type: ignore[assignment]
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Allow extra env vars not defined in model
    )

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "comment_insight"

    # Redis
    redis_url: str = "redis://localhost:6379"
    redis_db: int = 0
    redis_key_prefix: str = "comment_insight"
    redis_enabled: bool = True

    # Authentication
    auth_api_keys: list[str] = []  # Loaded from env var API_KEYS (comma-separated)
    auth_key_tiers: dict[str, str] = {}  # API key -> subscription tier
    auth_default_tier: str = "free"
    auth_require_key: bool = False  # Set True to require auth for all endpoints

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_storage: str = "redis"  # "redis" or "memory"

    # Rate Limit Tiers (requests per minute)
    rate_limit_tiers: dict[str, int] = {
        "free": 10,
        "pro": 100,
        "premium": 1000,
    }

    # Prometheus
    prometheus_enabled: bool = True
    prometheus_path: str = "/metrics"

    # YouTube Data API
    youtube_api_key: str = ""
    youtube_api_base_url: str = "https://www.googleapis.com/youtube/v3"
    youtube_api_timeout: int = 30
    youtube_default_max_comments: int = 100

    # LLM
    openai_api_key: str = ""
    llm_api_base: str | None = None
    llm_model: str = "gpt-3.5-turbo"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 1500
    llm_timeout: float = 90.0

    # Analysis
    analysis_max_comments: int = 100
    analysis_max_comment_length: int = 300
    analysis_exclude_creator_comments: bool = True
    analysis_honor_force_refresh: bool = False

    # Subscription tiers (comments per video, -1 = unlimited)
    tier_comment_limits: dict[str, int] = {
        "free": 100,
        "pro": 1000,
        "premium": -1,
    }
    tier_unlimited_ceiling: int = 10000

    # Ingestion locks
    ingestion_lock_timeout: int = 120  # seconds

    # Sharing
    share_base_url: str = "http://localhost:8000"

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    @property
    def parsed_api_keys(self) -> list[str]:
        """Parse API keys from environment variable.

        Supports:
        - Comma-separated list: "key1,key2,key3"
        - Single key: "key1"
        - Empty: []

        Keys listed in ``auth_key_tiers`` are always accepted.

        Returns:
            List of API keys
        """
        keys = list(self.auth_api_keys)

        if not keys:
            # Try to load from environment
            import os

            keys_env = os.getenv("API_KEYS", "")
            if keys_env:
                keys = [k.strip() for k in keys_env.split(",") if k.strip()]
            else:
                # Fallback to single API_KEY env var
                single_key = os.getenv("API_KEY", "")
                if single_key:
                    keys = [single_key]

        for key in self.auth_key_tiers:
            if key not in keys:
                keys.append(key)

        return keys


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_yaml_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to ./config.yaml or ./config.yml

    Returns:
        Dictionary with configuration values
    """

    if config_path is None:
        # Try default locations
        possible_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
            Path(__file__).parent.parent.parent / "config.yml",
        ]
        for path in possible_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not Path(config_path).exists():
        return {}

    try:
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        print(f"Warning: Failed to load config file: {e}")
        return {}


def apply_yaml_config(settings: Settings, config: dict[str, Any]) -> Settings:
    """
    Apply YAML configuration to settings object.

    Environment variables take precedence over YAML config: a YAML value is
    only applied while the setting still holds its default.

    Args:
        settings: Settings object to update
        config: Configuration dictionary from YAML

    Returns:
        Updated Settings object
    """
    defaults = Settings.model_fields

    def apply(section: str, mapping: dict[str, str]) -> None:
        values = config.get(section) or {}
        for yaml_key, field_name in mapping.items():
            if yaml_key not in values:
                continue
            if getattr(settings, field_name) == defaults[field_name].default:
                setattr(settings, field_name, values[yaml_key])

    # YouTube Data API
    apply(
        "youtube",
        {
            "api_base_url": "youtube_api_base_url",
            "timeout": "youtube_api_timeout",
            "default_max_comments": "youtube_default_max_comments",
        },
    )

    # LLM
    apply(
        "llm",
        {
            "api_base": "llm_api_base",
            "model": "llm_model",
            "temperature": "llm_temperature",
            "max_tokens": "llm_max_tokens",
            "timeout": "llm_timeout",
        },
    )

    # Analysis
    apply(
        "analysis",
        {
            "max_comments": "analysis_max_comments",
            "max_comment_length": "analysis_max_comment_length",
            "exclude_creator_comments": "analysis_exclude_creator_comments",
            "honor_force_refresh": "analysis_honor_force_refresh",
        },
    )

    # Subscription tiers
    if "tiers" in config:
        tiers = config["tiers"] or {}
        if "comment_limits" in tiers:
            settings.tier_comment_limits = {
                **settings.tier_comment_limits,
                **{str(k): int(v) for k, v in tiers["comment_limits"].items()},
            }
        if "unlimited_ceiling" in tiers and settings.tier_unlimited_ceiling == 10000:
            settings.tier_unlimited_ceiling = int(tiers["unlimited_ceiling"])

    # Logging
    apply("logging", {"level": "log_level", "file": "log_file"})

    return settings


def get_settings_with_yaml(config_path: Path | str | None = None) -> Settings:
    """
    Get settings with YAML configuration applied.

    Priority: Environment Variables > YAML Config > Defaults

    Args:
        config_path: Optional path to config file

    Returns:
        Settings object with YAML configuration applied
    """
    settings = get_settings()
    config = load_yaml_config(config_path)
    return apply_yaml_config(settings, config)
