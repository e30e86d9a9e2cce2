"""
Redis Cache Tests - Sales Coaching Assessment
tests/test_redis_cache.py

Tests for the Redis wrapper and the cache singleton: hits, misses,
invalidation and graceful degradation.
"""
from unittest.mock import MagicMock, patch

import redis

from salescoach.models.rubric import Rubric
from salescoach.services.cache import get_cache, reset_cache
from salescoach.services.redis_cache import RedisCache


class TestRedisCache:
    """Tests for the RedisCache class."""

    def test_redis_cache_init(self):
        with patch('salescoach.services.redis_cache.redis.from_url') as mock_from_url:
            cache = RedisCache(url="redis://cache:6379/1")
            mock_from_url.assert_called_once_with(
                "redis://cache:6379/1", decode_responses=True, socket_connect_timeout=5
            )
            assert cache.client is mock_from_url.return_value

    def test_cache_set_and_get_rubric(self, small_rubric):
        with patch('salescoach.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = MagicMock()
            mock_from_url.return_value = mock_client

            cache = RedisCache()
            cache.set("rubric:current", small_rubric, 300)
            mock_client.setex.assert_called_once_with(
                "salescoach:rubric:current", 300, small_rubric.model_dump_json()
            )

            mock_client.get.return_value = small_rubric.model_dump_json()
            result = cache.get("rubric:current", Rubric)
            assert result == small_rubric
            assert result.thresholds_for(2).experienced == 2

    def test_zero_ttl_skips_write(self, small_rubric):
        with patch('salescoach.services.redis_cache.redis.from_url') as mock_from_url:
            cache = RedisCache()
            cache.set("rubric:current", small_rubric, 0)
            mock_from_url.return_value.setex.assert_not_called()

    def test_cache_get_miss(self):
        with patch('salescoach.services.redis_cache.redis.from_url') as mock_from_url:
            mock_from_url.return_value.get.return_value = None
            assert RedisCache().get("nonexistent", Rubric) is None

    def test_cache_delete(self):
        with patch('salescoach.services.redis_cache.redis.from_url') as mock_from_url:
            RedisCache().delete("rubric:current")
            mock_from_url.return_value.delete.assert_called_once_with("salescoach:rubric:current")

    def test_cache_delete_pattern(self):
        with patch('salescoach.services.redis_cache.redis.from_url') as mock_from_url:
            mock_client = mock_from_url.return_value
            mock_client.scan_iter.return_value = ["salescoach:rubric:1", "salescoach:rubric:2"]

            RedisCache().delete_pattern("rubric:*")

            mock_client.scan_iter.assert_called_once_with(match="salescoach:rubric:*")
            assert mock_client.delete.call_count == 2


class TestCacheSingleton:
    """Tests for the cache singleton."""

    def teardown_method(self):
        reset_cache()

    def test_get_cache_returns_instance(self):
        with patch('salescoach.services.cache.RedisCache') as mock_cache_class:
            mock_cache_class.return_value.client.ping.return_value = True
            reset_cache()
            assert get_cache() is mock_cache_class.return_value

    def test_get_cache_returns_none_when_redis_unavailable(self):
        with patch('salescoach.services.cache.RedisCache') as mock_cache_class:
            mock_cache_class.return_value.client.ping.side_effect = redis.ConnectionError("refused")
            reset_cache()
            assert get_cache() is None

    def test_get_cache_singleton_behavior(self):
        with patch('salescoach.services.cache.RedisCache') as mock_cache_class:
            reset_cache()
            assert get_cache() is get_cache()
            assert mock_cache_class.call_count == 1
