"""Database module for MongoDB and Redis operations.

Usage:
    # Context manager (recommended)
    async with MongoDBManager() as db:
        video = await db.get_video("dQw4w9WgXcQ")

    # Manual lifecycle
    db = MongoDBManager()
    try:
        await db.initialize()
        analysis = await db.get_analysis("dQw4w9WgXcQ")
    finally:
        await db.close()
"""

from src.database.manager import MongoDBManager, get_db_manager
from src.database.redis import RedisManager, get_redis_manager

__all__ = [
    "MongoDBManager",
    "RedisManager",
    "get_db_manager",
    "get_redis_manager",
]
