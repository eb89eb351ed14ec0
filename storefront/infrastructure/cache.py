"""Redis-backed read-through cache.

The cache is advisory. Every operation swallows Redis failures and logs
them, so an outage degrades callers to direct store reads.
"""

import json
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()

FEATURED_PRODUCTS_KEY = "featured_products"


def product_key(product_id: int) -> str:
    """Cache key for a single product."""
    return f"product:{product_id}"


def search_key(query: str) -> str:
    """Cache key for a search result list."""
    return f"search:{query.lower()}"


def category_products_key(category_id: int) -> str:
    """Cache key for the product list of a category."""
    return f"category:{category_id}:products"


SEARCH_PATTERN = "search:*"


class CacheService:
    """Namespaced JSON cache over a Redis client.

    Keys are stored under ``key_prefix`` so several services can share
    one Redis database.

    Example usage:
        cache = CacheService(redis.from_url(settings.redis_url))
        await cache.set(product_key(1), {"id": 1}, ttl=3600)
        cached = await cache.get(product_key(1))
    """

    def __init__(self, client: redis.Redis, key_prefix: str = "ecommerce:") -> None:
        """Initialize cache.

        Args:
            client: Async Redis client.
            key_prefix: Namespace prepended to every key.
        """
        self._client = client
        self._prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Any | None:
        """Get a cached value.

        Args:
            key: Cache key without prefix.

        Returns:
            Decoded value, or None on miss or cache failure.
        """
        try:
            raw = await self._client.get(self._key(key))
        except RedisError:
            logger.warning("Cache read failed", key=key, exc_info=True)
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry", key=key)
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store a value with a TTL.

        Args:
            key: Cache key without prefix.
            value: JSON-serializable value.
            ttl: Time to live in seconds.

        Returns:
            True if stored, False if the cache was unavailable.
        """
        try:
            await self._client.set(self._key(key), json.dumps(value), ex=ttl)
            return True
        except (RedisError, TypeError):
            logger.warning("Cache write failed", key=key, exc_info=True)
            return False

    async def delete(self, key: str) -> bool:
        """Remove one key.

        Returns:
            True if the command reached Redis.
        """
        try:
            await self._client.delete(self._key(key))
            return True
        except RedisError:
            logger.warning("Cache delete failed", key=key, exc_info=True)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Remove all keys matching a glob pattern such as ``search:*``.

        Uses SCAN rather than KEYS so large keyspaces do not block Redis.

        Returns:
            Number of keys deleted.
        """
        try:
            keys = [key async for key in self._client.scan_iter(match=self._key(pattern))]
            if not keys:
                return 0
            deleted = await self._client.delete(*keys)
            return int(deleted or 0)
        except RedisError:
            logger.warning("Cache pattern delete failed", pattern=pattern, exc_info=True)
            return 0

    async def ping(self) -> bool:
        """Check cache connectivity."""
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        """Close the underlying client."""
        await self._client.aclose()
