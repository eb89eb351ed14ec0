"""Shared fixtures for API tests."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.catalog.filters import PaginatedResult, PaginationMetadata
from storefront.catalog.schemas import ProductRead
from storefront.main import app


def make_product_read(**overrides) -> ProductRead:
    """Build a product read model."""
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    values = {
        "id": 5,
        "name": "Red Mug",
        "price": Decimal("9.99"),
        "stock": 5,
        "category_id": 1,
        "shop_id": 1,
        "seller_id": 7,
        "images": [],
        "rating": 0.0,
        "is_active": True,
        "sku": "RED-1-ABCDEFGH",
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return ProductRead(**values)


class StubCatalogService:
    """Records calls and returns canned results or raises a set error."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.error: Exception | None = None
        self.product = make_product_read()

    async def _respond(self, name: str, *args, result=None):
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error
        return self.product if result is None else result

    async def get_products(self, filters):
        return await self._respond(
            "get_products",
            filters,
            result=PaginatedResult(
                items=[self.product],
                metadata=PaginationMetadata.from_counts(1, filters.page or 1, filters.limit or 10),
            ),
        )

    async def get_featured_products(self):
        return await self._respond("get_featured_products", result=[self.product])

    async def search_products(self, query):
        return await self._respond("search_products", query, result=[self.product])

    async def get_product(self, product_id):
        return await self._respond("get_product", product_id)

    async def get_products_by_category(self, category_id, filters=None):
        return await self._respond("get_products_by_category", category_id, result=[self.product])

    async def get_products_by_shop(self, shop_id, filters=None):
        return await self._respond("get_products_by_shop", shop_id, result=[self.product])

    async def create_product(self, dto):
        return await self._respond("create_product", dto)

    async def update_product(self, product_id, dto, requester_id):
        return await self._respond("update_product", product_id, dto, requester_id)

    async def update_stock(self, product_id, delta, requester_id):
        return await self._respond("update_stock", product_id, delta, requester_id)

    async def delete_product(self, product_id, requester_id):
        return await self._respond("delete_product", product_id, requester_id, result=True)


@pytest.fixture
def stub_service() -> StubCatalogService:
    """Stub catalog service."""
    return StubCatalogService()


@pytest.fixture
def client(stub_service: StubCatalogService) -> TestClient:
    """Test client with the stub service installed."""
    app.state.catalog_service = stub_service
    return TestClient(app)


@pytest.fixture
def seller_headers() -> dict[str, str]:
    """Headers identifying seller 7."""
    return {"X-Seller-ID": "7"}
