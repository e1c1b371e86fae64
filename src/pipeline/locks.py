"""Per-key locks serializing ingestion and generation for a video.

A Redis lock is used when Redis is reachable so that several API workers
agree; otherwise an in-process ``asyncio.Lock`` per key is used.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from redis.exceptions import LockError, RedisError

from src.database.redis import RedisManager

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Named async locks with an optional Redis backend."""

    def __init__(self, redis_manager: RedisManager | None = None, timeout: float = 120):
        self.redis_manager = redis_manager
        self.timeout = timeout
        self._local: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, name: str) -> AsyncIterator[None]:
        """Hold the lock called ``name`` for the duration of the block."""
        redis_lock = None
        if self.redis_manager is not None:
            redis_lock = await self.redis_manager.get_lock(
                name, timeout=self.timeout, blocking_timeout=self.timeout
            )

        if redis_lock is not None:
            try:
                acquired = await redis_lock.acquire()
            except RedisError as e:
                logger.warning("Redis lock %s unavailable, using local lock: %s", name, e)
            else:
                if not acquired:
                    raise TimeoutError(f"Timed out waiting for lock {name}")
                try:
                    yield
                finally:
                    try:
                        await redis_lock.release()
                    except LockError as e:
                        # Expired while held; nothing left to release
                        logger.warning("Lock %s expired before release: %s", name, e)
                return

        async with self._local_lock(name):
            yield

    @asynccontextmanager
    async def _local_lock(self, name: str) -> AsyncIterator[None]:
        lock = self._local.setdefault(name, asyncio.Lock())
        self._waiters[name] = self._waiters.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[name] -= 1
            if self._waiters[name] == 0:
                del self._waiters[name]
                del self._local[name]
