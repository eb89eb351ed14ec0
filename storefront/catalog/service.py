"""Catalog service for product operations.

Wraps repository calls with the rules the store cannot see: input
validation, seller ownership, image lifecycle, cache coherence and
domain events. Within one call the order is always validate, then
images, then the store mutation, then cache invalidation, then the event.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

import pydantic
import structlog

from storefront.catalog.filters import PaginatedResult, ProductFilter
from storefront.catalog.models import Product
from storefront.catalog.repository import ProductRepository
from storefront.catalog.schemas import (
    ImageUpload,
    ProductCreateDTO,
    ProductRead,
    ProductUpdateDTO,
)
from storefront.catalog.sku import generate_sku
from storefront.domain.base import DomainEvent
from storefront.domain.events import (
    ProductCreated,
    ProductDeleted,
    ProductStockUpdated,
    ProductUpdated,
)
from storefront.domain.exceptions import (
    AuthorizationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from storefront.infrastructure.blob_store import BlobStore
from storefront.infrastructure.cache import (
    FEATURED_PRODUCTS_KEY,
    SEARCH_PATTERN,
    CacheService,
    category_products_key,
    product_key,
    search_key,
)
from storefront.infrastructure.config import Settings, settings
from storefront.infrastructure.event_bus import EventBus

logger = structlog.get_logger()


class CatalogService:
    """Service for catalog operations.

    One instance is built at startup and shared by all requests; its
    collaborators are passed in rather than looked up globally.

    Example usage:
        service = CatalogService(
            repository=ProductRepository(session_factory),
            cache=CacheService(redis_client),
            event_bus=EventBus(),
            blob_store=SupabaseBlobStore(...),
        )
        product = await service.create_product(dto)
        page = await service.get_products(ProductFilter(min_price=Decimal("10")))
    """

    def __init__(
        self,
        repository: ProductRepository,
        cache: CacheService,
        event_bus: EventBus,
        blob_store: BlobStore,
        config: Settings | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repository: Product repository.
            cache: Read-through cache.
            event_bus: Domain event bus.
            blob_store: Image storage.
            config: Settings holding TTLs and validation limits.
        """
        self.repository = repository
        self.cache = cache
        self.event_bus = event_bus
        self.blob_store = blob_store
        self.config = config or settings

    # ========================================================================
    # Mutations
    # ========================================================================

    async def create_product(self, dto: ProductCreateDTO) -> ProductRead:
        """Create a product.

        Args:
            dto: Creation request; ``seller_id`` is the authenticated creator.

        Returns:
            Created product.

        Raises:
            ValidationError: If any field is invalid (all violations listed)
                or the shop is not owned by the seller.
            StorageError: If an image upload fails.
        """
        self._validate_product_data(
            {
                "name": dto.name,
                "price": dto.price,
                "stock": dto.stock,
                "discount": dto.discount,
            },
            dto.images,
        )

        image_urls: list[str] = []
        try:
            image_urls = await self._upload_images(dto.images)
            product = await self.repository.create(
                {
                    "name": dto.name,
                    "description": dto.description,
                    "price": dto.price,
                    "stock": dto.stock,
                    "discount": dto.discount,
                    "category_id": dto.category_id,
                    "shop_id": dto.shop_id,
                    "seller_id": dto.seller_id,
                    "images": image_urls,
                    "sku": generate_sku(dto.name, dto.shop_id),
                    "is_active": True,
                    "rating": 0.0,
                }
            )
        except Exception:
            await self._discard_images(image_urls, reason="create_failed")
            raise

        await self._invalidate_related_caches([product.category_id])
        self._publish(
            ProductCreated(
                product_id=product.id,
                seller_id=dto.seller_id,
                shop_id=dto.shop_id,
            )
        )

        logger.info(
            "Product created",
            product_id=product.id,
            seller_id=dto.seller_id,
            image_count=len(image_urls),
        )
        return ProductRead.model_validate(product)

    async def update_product(
        self,
        product_id: int,
        dto: ProductUpdateDTO,
        requester_id: int,
    ) -> ProductRead:
        """Apply a partial update on behalf of the owning seller.

        Only the fields present in ``dto`` are validated. New images are
        appended after the surviving existing images, in their original
        order.

        Raises:
            NotFoundError: If the product does not exist.
            AuthorizationError: If the requester does not own the product.
            ValidationError: If a provided field is invalid.
            StorageError: If an image upload or deletion fails.
        """
        existing = await self._get_owned_product(product_id, requester_id, action="update")

        field_values = dto.field_values()
        self._validate_product_data(field_values, dto.images)

        requested_deletes = set(dto.images_to_delete)
        images_to_delete = [url for url in existing.images if url in requested_deletes]
        if len(images_to_delete) != len(requested_deletes):
            logger.warning(
                "Ignoring image deletions for URLs not attached to product",
                product_id=product_id,
                ignored=sorted(requested_deletes - set(images_to_delete)),
            )

        new_urls: list[str] = []
        try:
            new_urls = await self._upload_images(dto.images)
            await self._delete_images(images_to_delete)

            data: dict[str, Any] = dict(field_values)
            if new_urls or images_to_delete:
                data["images"] = [
                    url for url in existing.images if url not in requested_deletes
                ] + new_urls

            product = await self.repository.update(product_id, data)
        except Exception:
            await self._discard_images(new_urls, reason="update_failed")
            raise

        await self._invalidate_related_caches(
            {existing.category_id, product.category_id},
            product_id=product_id,
        )
        self._publish(
            ProductUpdated(
                product_id=product_id,
                seller_id=requester_id,
                updates=tuple(dto.changed_fields()),
            )
        )

        logger.info("Product updated", product_id=product_id, updates=dto.changed_fields())
        return ProductRead.model_validate(product)

    async def delete_product(self, product_id: int, requester_id: int) -> bool:
        """Delete a product and all of its images.

        Images are removed first; if any removal fails the product is
        kept and the StorageError propagates.

        Raises:
            NotFoundError: If the product does not exist.
            AuthorizationError: If the requester does not own the product.
            StorageError: If an image deletion fails.
        """
        existing = await self._get_owned_product(product_id, requester_id, action="delete")

        await self._delete_images(existing.images)
        result = await self.repository.delete(product_id)

        await self._invalidate_related_caches([existing.category_id], product_id=product_id)
        self._publish(ProductDeleted(product_id=product_id, seller_id=requester_id))

        logger.info("Product deleted", product_id=product_id, seller_id=requester_id)
        return result

    async def update_stock(self, product_id: int, delta: int, requester_id: int) -> ProductRead:
        """Adjust stock by a relative delta.

        Only the product's own cache entry is dropped; listings are left
        to expire on their TTL.

        Raises:
            NotFoundError: If the product does not exist.
            AuthorizationError: If the requester does not own the product.
            ValidationError: If stock would drop below zero.
        """
        existing = await self._get_owned_product(product_id, requester_id, action="update_stock")

        if existing.stock + delta < 0:
            raise ValidationError("Insufficient stock")

        product = await self.repository.update_stock(product_id, delta)

        await self.cache.delete(product_key(product_id))
        self._publish(
            ProductStockUpdated(
                product_id=product_id,
                seller_id=requester_id,
                previous_stock=product.stock - delta,
                new_stock=product.stock,
                change=delta,
            )
        )

        logger.info(
            "Product stock updated",
            product_id=product_id,
            change=delta,
            new_stock=product.stock,
        )
        return ProductRead.model_validate(product)

    async def refresh_rating(self, product_id: int) -> ProductRead:
        """Recompute a product's rating after its reviews changed.

        Raises:
            NotFoundError: If the product does not exist.
        """
        product = await self.repository.update_rating(product_id)
        await self._run_cache_batch(
            [
                self.cache.delete(product_key(product_id)),
                self.cache.delete(FEATURED_PRODUCTS_KEY),
            ]
        )
        return ProductRead.model_validate(product)

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_product(self, product_id: int) -> ProductRead:
        """Get a product, served from cache when possible.

        Raises:
            NotFoundError: If the product does not exist.
        """
        key = product_key(product_id)
        cached = self._from_cache(await self.cache.get(key), ProductRead)
        if cached is not None:
            return cached

        product = await self.repository.find_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        result = ProductRead.model_validate(product)
        await self.cache.set(key, result.model_dump(mode="json"), self.config.product_cache_ttl)
        return result

    async def get_products(self, filters: ProductFilter) -> PaginatedResult[ProductRead]:
        """List products matching a filter. Never cached."""
        page = await self.repository.find_with_filters(filters)
        return PaginatedResult(
            items=[ProductRead.model_validate(p) for p in page.items],
            metadata=page.metadata,
        )

    async def get_featured_products(self) -> list[ProductRead]:
        """Get top-rated in-stock products, served from cache when possible."""
        return await self._cached_list(
            FEATURED_PRODUCTS_KEY,
            self.config.featured_cache_ttl,
            lambda: self.repository.find_featured(
                limit=self.config.featured_limit,
                min_rating=self.config.featured_min_rating,
            ),
        )

    async def search_products(self, query: str) -> list[ProductRead]:
        """Full-text search over name and description.

        Raises:
            ValidationError: If the query is empty or whitespace.
        """
        if not query or not query.strip():
            raise ValidationError("Search query cannot be empty")

        query = query.strip()
        return await self._cached_list(
            search_key(query),
            self.config.search_cache_ttl,
            lambda: self.repository.search(query),
        )

    async def get_products_by_category(
        self,
        category_id: int,
        filters: ProductFilter | None = None,
    ) -> list[ProductRead]:
        """List products in a category and its direct children.

        The unfiltered list is cached; filtered calls go to the store.
        """
        if filters is not None:
            products = await self.repository.find_by_category(category_id, filters)
            return [ProductRead.model_validate(p) for p in products]

        return await self._cached_list(
            category_products_key(category_id),
            self.config.category_cache_ttl,
            lambda: self.repository.find_by_category(category_id),
        )

    async def get_products_by_shop(
        self,
        shop_id: int,
        filters: ProductFilter | None = None,
    ) -> list[ProductRead]:
        """List active products in a shop."""
        products = await self.repository.find_by_shop(shop_id, filters)
        return [ProductRead.model_validate(p) for p in products]

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _get_owned_product(self, product_id: int, requester_id: int, action: str) -> Product:
        product = await self.repository.find_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)

        if product.seller_id != requester_id:
            logger.warning(
                "Ownership check failed",
                product_id=product_id,
                requester_id=requester_id,
                action=action,
            )
            raise AuthorizationError(
                f"You are not authorized to {action.replace('_', ' ')} this product",
                resource_id=product_id,
                requester_id=requester_id,
            )
        return product

    def _validate_product_data(self, data: dict[str, Any], images: list[ImageUpload]) -> None:
        """Check every provided field and raise once with all violations.

        Fields absent from ``data`` are not checked, which is how partial
        updates skip fields they do not touch.
        """
        errors: list[str] = []

        if "name" in data:
            name = data["name"]
            if not name or len(name) < 3:
                errors.append("Product name must be at least 3 characters long")

        if data.get("price") is not None and data["price"] <= 0:
            errors.append("Price must be greater than 0")

        if data.get("stock") is not None and data["stock"] < 0:
            errors.append("Stock cannot be negative")

        discount = data.get("discount")
        if discount is not None and not 0 <= discount <= 100:
            errors.append("Discount must be between 0 and 100")

        if images:
            allowed = self.config.allowed_image_types
            if any(image.content_type not in allowed for image in images):
                errors.append("Invalid image format. Supported formats: JPEG, PNG, WEBP")

            max_mb = self.config.max_image_bytes // (1024 * 1024)
            if any(image.size > self.config.max_image_bytes for image in images):
                errors.append(f"Image size must not exceed {max_mb}MB")

        if errors:
            raise ValidationError(errors)

    async def _upload_images(self, images: list[ImageUpload]) -> list[str]:
        """Upload images concurrently.

        If any upload fails, the ones that succeeded are deleted before
        the first failure is re-raised.
        """
        if not images:
            return []

        results = await asyncio.gather(
            *(self.blob_store.upload(img.data, img.content_type, img.filename) for img in images),
            return_exceptions=True,
        )
        urls = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if isinstance(r, BaseException)]

        if failures:
            await self._discard_images(urls, reason="partial_upload")
            raise failures[0]

        return urls

    async def _delete_images(self, urls: list[str]) -> None:
        """Delete images concurrently; raise StorageError if any failed."""
        if not urls:
            return

        results = await asyncio.gather(
            *(self.blob_store.delete(url) for url in urls),
            return_exceptions=True,
        )
        failed = [url for url, r in zip(urls, results) if isinstance(r, BaseException)]
        if failed:
            logger.error("Image deletion failed", failed_urls=failed, attempted=len(urls))
            raise StorageError(
                f"Failed to delete {len(failed)} of {len(urls)} image(s)",
                operation="delete",
                target=", ".join(failed),
            )

    async def _discard_images(self, urls: list[str], reason: str) -> None:
        """Best-effort removal of images uploaded by a failed call. Never raises."""
        if not urls:
            return

        results = await asyncio.gather(
            *(self.blob_store.delete(url) for url in urls),
            return_exceptions=True,
        )
        orphaned = [url for url, r in zip(urls, results) if isinstance(r, BaseException)]
        if orphaned:
            logger.warning(
                "Image cleanup left orphaned blobs",
                reason=reason,
                orphaned_urls=orphaned,
                attempted=len(urls),
            )
        else:
            logger.info("Uploaded images cleaned up", reason=reason, count=len(urls))

    async def _invalidate_related_caches(
        self,
        category_ids: Iterable[int],
        product_id: int | None = None,
    ) -> None:
        operations = [
            self.cache.delete(FEATURED_PRODUCTS_KEY),
            *(self.cache.delete(category_products_key(cid)) for cid in set(category_ids)),
            self.cache.delete_pattern(SEARCH_PATTERN),
        ]
        if product_id is not None:
            operations.append(self.cache.delete(product_key(product_id)))
        await self._run_cache_batch(operations)

    async def _run_cache_batch(self, operations: list[Awaitable[Any]]) -> None:
        """Run cache operations independently; failures are logged, not raised."""
        results = await asyncio.gather(*operations, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning("Cache invalidation failed", error=str(result))

    async def _cached_list(
        self,
        key: str,
        ttl: int,
        load: Callable[[], Awaitable[Sequence[Product]]],
    ) -> list[ProductRead]:
        cached = await self.cache.get(key)
        if isinstance(cached, list):
            try:
                return [ProductRead.model_validate(item) for item in cached]
            except pydantic.ValidationError:
                logger.warning("Discarding stale cache entry", key=key)

        products = [ProductRead.model_validate(p) for p in await load()]
        await self.cache.set(key, [p.model_dump(mode="json") for p in products], ttl)
        return products

    @staticmethod
    def _from_cache(value: Any, model: type[ProductRead]) -> ProductRead | None:
        if value is None:
            return None
        try:
            return model.model_validate(value)
        except pydantic.ValidationError:
            logger.warning("Discarding stale cache entry", model=model.__name__)
            return None

    def _publish(self, event: DomainEvent) -> None:
        self.event_bus.publish(event)
