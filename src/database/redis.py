"""Redis integration for distributed locks and health checks.

This module provides:
- Redis connection management with connection pooling
- Key prefixing for namespacing
- Distributed locks for per-video ingestion
- Health check capabilities

Usage:
    # Get Redis manager
    redis_manager = get_redis_manager()

    # Acquire a lock (None when Redis is unavailable)
    lock = await redis_manager.get_lock("ingest:dQw4w9WgXcQ", timeout=120)
"""

import logging
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from redis.asyncio import ConnectionPool
from redis.asyncio.lock import Lock
from redis.exceptions import RedisError

from src.core.config import get_settings

logger = logging.getLogger(__name__)


class RedisManager:
    """Redis connection and operation manager.

    Provides async Redis operations with connection pooling and graceful
    degradation when Redis is unavailable.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        redis_db: int = 0,
        key_prefix: str | None = None,
        health_check_timeout: float = 5.0,
        enabled: bool | None = None,
    ) -> None:
        """Initialize Redis manager.

        Args:
            redis_url: Redis connection URL (redis://localhost:6379)
            redis_db: Redis database number
            key_prefix: Prefix for all keys (e.g., "comment_insight:lock:...")
            health_check_timeout: Timeout for health checks in seconds
            enabled: Set False to never connect (in-process fallbacks only)
        """
        settings = get_settings()

        self.redis_url = redis_url or settings.redis_url
        self.redis_db = redis_db or settings.redis_db
        self.key_prefix = key_prefix or settings.redis_key_prefix
        self.health_check_timeout = health_check_timeout
        self.enabled = settings.redis_enabled if enabled is None else enabled

        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None
        self._available = False

    async def connect(self) -> bool:
        """Establish Redis connection with connection pooling.

        Returns:
            True if connection successful, False otherwise
        """
        if not self.enabled:
            return False

        if self._client is not None:
            return self._available

        try:
            # Create connection pool
            self._pool = ConnectionPool.from_url(
                self.redis_url,
                db=self.redis_db,
                decode_responses=True,
                max_connections=50,
                socket_timeout=self.health_check_timeout,
                socket_connect_timeout=self.health_check_timeout,
            )

            # Create Redis client
            self._client = redis.Redis(connection_pool=self._pool)

            # Test connection
            await self._client.ping()
            self._available = True

            logger.info(
                "Redis connection established",
                extra={"url": self._redis_url_safe()},
            )
            return True

        except (RedisError, OSError) as e:
            logger.warning(
                "Redis connection failed, operating in degraded mode: %s",
                e,
            )
            self._available = False
            self._client = None
            self._pool = None
            return False

    async def disconnect(self) -> None:
        """Close Redis connection and pool."""
        if self._client:
            try:
                await self._client.aclose()
            except RedisError as e:
                logger.warning("Error closing Redis client: %s", e)
            finally:
                self._client = None
                self._available = False

        if self._pool:
            try:
                await self._pool.disconnect()
            except RedisError as e:
                logger.warning("Error disconnecting Redis pool: %s", e)
            finally:
                self._pool = None

        logger.info("Redis connection closed")

    def _redis_url_safe(self) -> str:
        """Return sanitized Redis URL for logging (no password)."""
        if "://" not in self.redis_url:
            return self.redis_url
        scheme, rest = self.redis_url.split("://", 1)
        if "@" in rest:
            userinfo, host = rest.split("@", 1)
            if ":" in userinfo:
                username, _ = userinfo.split(":", 1)
                return f"{scheme}://{username}:***@{host}"
            return f"{scheme}://***@{host}"
        return self.redis_url

    def _make_key(self, key_type: str, identifier: str) -> str:
        """Create prefixed Redis key.

        Args:
            key_type: Type of key (e.g., "lock")
            identifier: Unique identifier

        Returns:
            Prefixed key string
        """
        return f"{self.key_prefix}:{key_type}:{identifier}"

    async def _ensure_connected(self) -> bool:
        """Ensure Redis is connected, attempt connection if not.

        Returns:
            True if connected, False otherwise
        """
        if self._client is None:
            return await self.connect()
        return self._available

    # Lock Operations

    async def get_lock(
        self,
        name: str,
        timeout: float,
        blocking_timeout: float | None = None,
    ) -> Lock | None:
        """Create a distributed lock.

        Args:
            name: Lock name, prefixed before use
            timeout: Seconds before a held lock expires
            blocking_timeout: Seconds to wait when acquiring (None waits until free)

        Returns:
            Unacquired redis Lock, or None if Redis is unavailable
        """
        if not await self._ensure_connected():
            return None

        return self._client.lock(
            self._make_key("lock", name),
            timeout=timeout,
            blocking_timeout=blocking_timeout,
        )

    # Health Check

    async def health_check(self) -> dict[str, Any]:
        """Perform Redis health check.

        Returns:
            Health status dictionary
        """
        result = {
            "status": "unhealthy",
            "latency_ms": 0,
            "available": False,
        }

        if not self.enabled:
            result["status"] = "disabled"
            return result

        if not await self._ensure_connected():
            return result

        try:
            start = datetime.now(timezone.utc)
            await self._client.ping()
            latency = (datetime.now(timezone.utc) - start).total_seconds() * 1000

            result["status"] = "healthy"
            result["latency_ms"] = round(latency, 2)
            result["available"] = True

        except (RedisError, OSError) as e:
            result["status"] = "unhealthy"
            result["error"] = str(e)
            self._available = False

        return result

    @property
    def is_available(self) -> bool:
        """Check if Redis is available."""
        return self._available


# Global Redis manager instance
_redis_manager: RedisManager | None = None


def get_redis_manager() -> RedisManager:
    """Get or create the global Redis manager.

    Returns:
        RedisManager instance
    """
    global _redis_manager
    if _redis_manager is None:
        _redis_manager = RedisManager()
    return _redis_manager


async def init_redis() -> RedisManager:
    """Initialize Redis connection.

    Returns:
        RedisManager instance
    """
    manager = get_redis_manager()
    await manager.connect()
    return manager


async def close_redis() -> None:
    """Close Redis connection."""
    manager = get_redis_manager()
    await manager.disconnect()
