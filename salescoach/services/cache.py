"""
Cache Service Singleton - Sales Coaching Assessment
salescoach/services/cache.py

Provides a singleton Redis cache instance with TTL constants.
Returns None when Redis is unavailable so callers read the source directly.
"""
import logging
from typing import Optional

import redis

from salescoach.config import settings
from salescoach.services.redis_cache import RedisCache

logger = logging.getLogger(__name__)

TTL_RUBRIC = settings.CACHE_TTL_RUBRIC

_cache: Optional[RedisCache] = None


def get_cache() -> Optional[RedisCache]:
    """
    Get or create the Redis cache instance.

    Returns:
        RedisCache instance if Redis is reachable, None otherwise.
    """
    global _cache
    if _cache is None:
        try:
            cache = RedisCache()
            cache.client.ping()
            _cache = cache
        except (redis.RedisError, ConnectionError) as e:
            logger.info("redis_unavailable", extra={"error": str(e)})
            _cache = None
    return _cache


def reset_cache() -> None:
    """Drop the singleton so the next call reconnects."""
    global _cache
    _cache = None
