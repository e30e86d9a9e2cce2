"""
Redis Cache - Sales Coaching Assessment
salescoach/services/redis_cache.py

Stores Pydantic models (the rubric tree) as JSON with a TTL.
"""
from typing import Optional, Type, TypeVar

import redis
from pydantic import BaseModel

from salescoach.config import settings

T = TypeVar("T", bound=BaseModel)


class RedisCache:
    def __init__(self, url: Optional[str] = None, prefix: str = "salescoach:"):
        self.prefix = prefix
        self.client = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str, model: Type[T]) -> Optional[T]:
        """Get cached item and deserialize to Pydantic model."""
        data = self.client.get(self._key(key))
        if data:
            return model.model_validate_json(data)
        return None

    def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        """Cache Pydantic model with TTL; a TTL of 0 disables caching."""
        if ttl_seconds <= 0:
            return
        self.client.setex(
            self._key(key),
            ttl_seconds,
            value.model_dump_json(),
        )

    def delete(self, key: str) -> None:
        """Invalidate single cache entry."""
        self.client.delete(self._key(key))

    def delete_pattern(self, pattern: str) -> None:
        """Invalidate all keys matching pattern."""
        for key in self.client.scan_iter(match=self._key(pattern)):
            self.client.delete(key)
