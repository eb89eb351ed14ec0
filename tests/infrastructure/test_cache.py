"""Tests for the Redis cache service."""

import fakeredis
import pytest

from storefront.infrastructure.cache import (
    SEARCH_PATTERN,
    CacheService,
    category_products_key,
    product_key,
    search_key,
)


class TestKeys:
    """Tests for cache key helpers."""

    def test_key_shapes(self) -> None:
        """Keys follow the catalog naming scheme."""
        assert product_key(5) == "product:5"
        assert category_products_key(3) == "category:3:products"
        assert search_key("Red MUG") == "search:red mug"


class TestCacheService:
    """Tests for CacheService over fakeredis."""

    async def test_set_and_get(self, cache: CacheService) -> None:
        """Values round-trip as JSON."""
        assert await cache.set("product:1", {"id": 1, "name": "Mug"}, ttl=60) is True
        assert await cache.get("product:1") == {"id": 1, "name": "Mug"}

    async def test_miss(self, cache: CacheService) -> None:
        """Missing key returns None."""
        assert await cache.get("product:404") is None

    async def test_keys_are_prefixed_and_expire(self, cache: CacheService, redis_client) -> None:
        """Keys are namespaced and carry the TTL."""
        await cache.set("product:1", {"id": 1}, ttl=120)

        assert await redis_client.exists("ecommerce:product:1") == 1
        ttl = await redis_client.ttl("ecommerce:product:1")
        assert 0 < ttl <= 120

    async def test_delete(self, cache: CacheService) -> None:
        """Deleted key is gone."""
        await cache.set("product:1", {"id": 1}, ttl=60)

        await cache.delete("product:1")

        assert await cache.get("product:1") is None

    async def test_delete_pattern(self, cache: CacheService, redis_client) -> None:
        """Pattern delete removes only matching keys in the namespace."""
        await cache.set(search_key("mug"), [], ttl=60)
        await cache.set(search_key("lamp"), [], ttl=60)
        await cache.set(product_key(1), {"id": 1}, ttl=60)
        await redis_client.set("other:search:mug", "x")

        deleted = await cache.delete_pattern(SEARCH_PATTERN)

        assert deleted == 2
        assert await cache.get(product_key(1)) == {"id": 1}
        assert await redis_client.get("other:search:mug") == b"x"

    async def test_undecodable_entry_is_dropped(self, cache: CacheService, redis_client) -> None:
        """Corrupt entries read as a miss and are removed."""
        await redis_client.set("ecommerce:product:1", b"{not json")

        assert await cache.get("product:1") is None
        assert await redis_client.exists("ecommerce:product:1") == 0

    async def test_unserializable_value(self, cache: CacheService) -> None:
        """Values that are not JSON are not stored."""
        assert await cache.set("product:1", {"when": object()}, ttl=60) is False

    async def test_ping(self, cache: CacheService) -> None:
        """Ping succeeds against a live server."""
        assert await cache.ping() is True


class TestCacheOutage:
    """Tests for behaviour when Redis is unreachable."""

    @pytest.fixture
    def dead_cache(self) -> CacheService:
        """Cache whose server refuses connections."""
        server = fakeredis.FakeServer()
        server.connected = False
        return CacheService(fakeredis.FakeAsyncRedis(server=server))

    async def test_operations_degrade(self, dead_cache: CacheService) -> None:
        """No operation raises when Redis is down."""
        assert await dead_cache.get("product:1") is None
        assert await dead_cache.set("product:1", {"id": 1}, ttl=60) is False
        assert await dead_cache.delete("product:1") is False
        assert await dead_cache.delete_pattern(SEARCH_PATTERN) == 0
        assert await dead_cache.ping() is False
