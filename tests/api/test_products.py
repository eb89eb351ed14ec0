"""Tests for product endpoints."""

from decimal import Decimal

from fastapi.testclient import TestClient

from storefront.catalog.filters import SortKey, SortOrder
from storefront.domain.exceptions import (
    AuthorizationError,
    NotFoundError,
    StorageError,
    ValidationError,
)


class TestListProducts:
    """Tests for GET /products."""

    def test_builds_filter_from_query(self, client: TestClient, stub_service) -> None:
        """Query parameters become a ProductFilter."""
        response = client.get(
            "/products",
            params={
                "minPrice": "10",
                "maxPrice": "50",
                "sortBy": "price",
                "sortOrder": "asc",
                "category_id": 2,
                "inStock": "true",
            },
        )

        assert response.status_code == 200
        filters = stub_service.calls[0][1][0]
        assert filters.min_price == Decimal("10")
        assert filters.max_price == Decimal("50")
        assert filters.sort_by is SortKey.PRICE
        assert filters.sort_order is SortOrder.ASC
        assert filters.category_id == 2
        assert filters.in_stock is True
        assert filters.page == 1
        assert filters.limit == 10

    def test_response_shape(self, client: TestClient) -> None:
        """Items and pagination are separate objects."""
        data = client.get("/products").json()

        assert data["items"][0]["sku"] == "RED-1-ABCDEFGH"
        assert data["pagination"] == {
            "total": 1,
            "page": 1,
            "limit": 10,
            "total_pages": 1,
            "has_next_page": False,
            "has_prev_page": False,
        }

    def test_invalid_sort_key(self, client: TestClient, stub_service) -> None:
        """Unknown sort key is a validation error and never reaches the service."""
        response = client.get("/products", params={"sortBy": "name"})

        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert data["request_id"] == response.headers["X-Request-ID"]
        assert stub_service.calls == []


class TestReadEndpoints:
    """Tests for single-product and scoped listings."""

    def test_get_product(self, client: TestClient, stub_service) -> None:
        """Product detail is returned."""
        response = client.get("/products/5")

        assert response.status_code == 200
        assert response.json()["price"] == "9.99"
        assert stub_service.calls == [("get_product", (5,))]

    def test_get_missing_product(self, client: TestClient, stub_service) -> None:
        """NotFoundError renders as 404."""
        stub_service.error = NotFoundError("Product", 5)

        response = client.get("/products/5")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"
        assert response.json()["message"] == "Product 5 not found"

    def test_featured(self, client: TestClient) -> None:
        """Featured list is returned."""
        response = client.get("/products/featured")

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_search(self, client: TestClient, stub_service) -> None:
        """Search passes the query through."""
        client.get("/products/search", params={"q": "mug"})

        assert stub_service.calls == [("search_products", ("mug",))]

    def test_category_and_shop(self, client: TestClient, stub_service) -> None:
        """Scoped listings pass their IDs through."""
        client.get("/categories/3/products")
        client.get("/shops/4/products")

        assert stub_service.calls == [
            ("get_products_by_category", (3,)),
            ("get_products_by_shop", (4,)),
        ]


class TestCreateProduct:
    """Tests for POST /products."""

    def test_creates_with_images(self, client: TestClient, stub_service, seller_headers) -> None:
        """Multipart form becomes a DTO owned by the header seller."""
        response = client.post(
            "/products",
            data={"name": "Red Mug", "price": "9.99", "category_id": "1", "shop_id": "1", "stock": "5"},
            files=[
                ("images", ("a.png", b"png-a", "image/png")),
                ("images", ("b.jpg", b"jpg-b", "image/jpeg")),
            ],
            headers=seller_headers,
        )

        assert response.status_code == 201
        dto = stub_service.calls[0][1][0]
        assert dto.seller_id == 7
        assert dto.price == Decimal("9.99")
        assert dto.stock == 5
        assert [(i.filename, i.content_type, i.data) for i in dto.images] == [
            ("a.png", "image/png", b"png-a"),
            ("b.jpg", "image/jpeg", b"jpg-b"),
        ]

    def test_requires_seller(self, client: TestClient, stub_service) -> None:
        """Missing seller header is refused."""
        response = client.post(
            "/products",
            data={"name": "Red Mug", "price": "9.99", "category_id": "1", "shop_id": "1"},
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"
        assert stub_service.calls == []

    def test_validation_errors_listed(self, client: TestClient, stub_service, seller_headers) -> None:
        """Accumulated validation messages are returned in details."""
        stub_service.error = ValidationError(["Price must be greater than 0", "Stock cannot be negative"])

        response = client.post(
            "/products",
            data={"name": "Red Mug", "price": "0", "category_id": "1", "shop_id": "1", "stock": "-1"},
            headers=seller_headers,
        )

        assert response.status_code == 422
        assert response.json()["details"]["errors"] == [
            "Price must be greater than 0",
            "Stock cannot be negative",
        ]

    def test_storage_failure(self, client: TestClient, stub_service, seller_headers) -> None:
        """StorageError renders as 502."""
        stub_service.error = StorageError("Error uploading image", operation="upload")

        response = client.post(
            "/products",
            data={"name": "Red Mug", "price": "9.99", "category_id": "1", "shop_id": "1"},
            headers=seller_headers,
        )

        assert response.status_code == 502
        assert response.json()["error_code"] == "STORAGE_ERROR"


class TestMutations:
    """Tests for update, stock and delete endpoints."""

    def test_update_product(self, client: TestClient, stub_service, seller_headers) -> None:
        """Partial form updates only provided fields."""
        response = client.patch(
            "/products/5",
            data={"price": "12.50", "images_to_delete": ["https://cdn.test/a.png", "https://cdn.test/b.png"]},
            files=[("images", ("c.png", b"png-c", "image/png"))],
            headers=seller_headers,
        )

        assert response.status_code == 200
        name, (product_id, dto, requester_id) = stub_service.calls[0]
        assert (name, product_id, requester_id) == ("update_product", 5, 7)
        assert dto.price == Decimal("12.50")
        assert dto.name is None
        assert dto.images_to_delete == ["https://cdn.test/a.png", "https://cdn.test/b.png"]
        assert len(dto.images) == 1

    def test_update_by_non_owner(self, client: TestClient, stub_service, seller_headers) -> None:
        """AuthorizationError renders as 403."""
        stub_service.error = AuthorizationError("You are not authorized to update this product")

        response = client.patch("/products/5", data={"name": "New"}, headers=seller_headers)

        assert response.status_code == 403

    def test_update_stock(self, client: TestClient, stub_service, seller_headers) -> None:
        """Stock delta is passed with the acting seller."""
        response = client.patch("/products/5/stock", json={"quantity": -3}, headers=seller_headers)

        assert response.status_code == 200
        assert stub_service.calls == [("update_stock", (5, -3, 7))]

    def test_insufficient_stock(self, client: TestClient, stub_service, seller_headers) -> None:
        """Insufficient stock renders as 422."""
        stub_service.error = ValidationError("Insufficient stock")

        response = client.patch("/products/5/stock", json={"quantity": -3}, headers=seller_headers)

        assert response.status_code == 422
        assert response.json()["message"] == "Insufficient stock"

    def test_delete_product(self, client: TestClient, stub_service, seller_headers) -> None:
        """Delete reports success."""
        response = client.delete("/products/5", headers=seller_headers)

        assert response.status_code == 200
        assert response.json() == {"deleted": True}
        assert stub_service.calls == [("delete_product", (5, 7))]
