"""Shared fixtures: a seeded SQLite catalog, fakeredis cache and fake collaborators."""

from collections.abc import AsyncIterator
from decimal import Decimal
from typing import Any

import fakeredis
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from storefront.catalog.models import Category, Product, Review, Shop, User
from storefront.catalog.repository import ProductRepository
from storefront.domain.exceptions import StorageError
from storefront.infrastructure.cache import CacheService
from storefront.infrastructure.database import Base, create_engine, create_session_factory

# ============================================================================
# Database
# ============================================================================


@pytest.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """File-backed SQLite engine so concurrent sessions see the same data."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, int]:
    """Seed users, a small category tree and two shops.

    Categories: electronics > phones > cases, electronics > laptops, books.
    Seller 1 owns shop 1; seller 2 owns shop 2; user 3 only writes reviews.
    """
    async with session_factory() as session:
        async with session.begin():
            session.add_all(
                [
                    User(id=1, name="Alice"),
                    User(id=2, name="Bob"),
                    User(id=3, name="Carol", avatar="https://cdn.test/carol.png"),
                    Category(id=1, name="Electronics", slug="electronics"),
                    Category(id=2, name="Phones", slug="phones", parent_id=1),
                    Category(id=3, name="Laptops", slug="laptops", parent_id=1),
                    Category(id=4, name="Cases", slug="cases", parent_id=2),
                    Category(id=5, name="Books", slug="books"),
                    Shop(id=1, name="Alice Gadgets", seller_id=1, is_verified=True),
                    Shop(id=2, name="Bob Books", seller_id=2),
                ]
            )
    return {"seller": 1, "other_seller": 2, "reviewer": 3, "shop": 1, "other_shop": 2}


@pytest.fixture
def add_product(session_factory: async_sessionmaker[AsyncSession]):
    """Insert a product directly, bypassing the repository."""
    counter = {"n": 0}

    async def _add(**overrides: Any) -> Product:
        counter["n"] += 1
        values: dict[str, Any] = {
            "name": f"Product {counter['n']}",
            "description": None,
            "price": Decimal("20.00"),
            "stock": 10,
            "category_id": 1,
            "shop_id": 1,
            "seller_id": 1,
            "images": [],
            "rating": 0.0,
            "is_active": True,
            "sku": f"PRO-1-TEST{counter['n']:04d}",
        }
        values.update(overrides)
        async with session_factory() as session:
            async with session.begin():
                product = Product(**values)
                session.add(product)
        return product

    return _add


@pytest.fixture
def add_review(session_factory: async_sessionmaker[AsyncSession]):
    """Insert a review directly."""

    async def _add(product_id: int, rating: int, user_id: int = 3, comment: str | None = None) -> None:
        async with session_factory() as session:
            async with session.begin():
                session.add(
                    Review(product_id=product_id, user_id=user_id, rating=rating, comment=comment)
                )

    return _add


@pytest.fixture
def repository(session_factory: async_sessionmaker[AsyncSession]) -> ProductRepository:
    """Repository over the test database."""
    return ProductRepository(session_factory)


# ============================================================================
# Cache
# ============================================================================


@pytest.fixture
async def redis_client() -> AsyncIterator[fakeredis.FakeAsyncRedis]:
    """In-memory Redis."""
    client = fakeredis.FakeAsyncRedis()
    yield client
    await client.flushall()


@pytest.fixture
def cache(redis_client: fakeredis.FakeAsyncRedis) -> CacheService:
    """Cache service over fakeredis."""
    return CacheService(redis_client)


# ============================================================================
# Blob store
# ============================================================================


class FakeBlobStore:
    """In-memory blob store that can be told to fail specific calls."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.upload_calls = 0
        self.fail_upload_calls: set[int] = set()
        self.fail_delete_urls: set[str] = set()
        self.deleted: list[str] = []

    async def upload(self, data: bytes, content_type: str, filename: str | None = None) -> str:
        self.upload_calls += 1
        if self.upload_calls in self.fail_upload_calls:
            raise StorageError("Upload failed", operation="upload", target=filename)
        url = f"https://blobs.test/products/{self.upload_calls}-{filename}"
        self.objects[url] = data
        return url

    async def delete(self, url: str) -> None:
        if url in self.fail_delete_urls:
            raise StorageError("Delete failed", operation="delete", target=url)
        self.deleted.append(url)
        self.objects.pop(url, None)


@pytest.fixture
def blob_store() -> FakeBlobStore:
    """Fresh fake blob store."""
    return FakeBlobStore()
