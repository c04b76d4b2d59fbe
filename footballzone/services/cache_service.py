"""Redis cache service for article listing, search and lookup payloads."""

import json
import logging
from typing import Optional, Any

import redis

from footballzone.core.config import settings

logger = logging.getLogger("footballzone.cache")


class CacheService:
    """Redis-backed JSON cache. Every failure is a miss, never an error."""

    def __init__(self, url: str, enabled: bool = True):
        self.url = url
        self.enabled = enabled
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self.url,
                decode_responses=True,
                max_connections=100,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return self._client

    def get(self, key: str) -> Optional[str]:
        """Get a cached value by key."""
        if not self.enabled:
            return None
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.warning("Cache get failed for %s: %s", key, e)
            return None

    def set(self, key: str, value: str, ttl_seconds: int = 600) -> None:
        """Set a cached value with TTL."""
        if not self.enabled:
            return
        try:
            self.client.setex(key, ttl_seconds, value)
        except redis.RedisError as e:
            logger.warning("Cache set failed for %s: %s", key, e)

    def get_json(self, key: str) -> Optional[Any]:
        """Get and parse a JSON cached value."""
        raw = self.get(key)
        if raw:
            return json.loads(raw)
        return None

    def set_json(self, key: str, value: Any, ttl_seconds: int = 600) -> None:
        """Serialize and cache a JSON value."""
        self.set(key, json.dumps(value, default=str, ensure_ascii=False), ttl_seconds)

    def delete(self, key: str) -> None:
        """Delete a cached key."""
        if not self.enabled:
            return
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning("Cache delete failed for %s: %s", key, e)

    def invalidate_pattern(self, pattern: str) -> None:
        """Delete all keys matching a pattern."""
        if not self.enabled:
            return
        try:
            keys = list(self.client.scan_iter(match=pattern, count=500))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Cache invalidation failed for %s: %s", pattern, e)

    def health_check(self) -> bool:
        """Check if Redis is reachable."""
        if not self.enabled:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


cache_service = CacheService(settings.REDIS_URL, enabled=settings.CACHE_ENABLED)
