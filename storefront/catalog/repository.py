"""Product repository for database operations.

Translates product filters into SQL, owns persistence-level
invariants (shop ownership on insert, immutable seller, non-negative
stock) and maps store failures into the domain error taxonomy.
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import raiseload, selectinload
from sqlalchemy.orm.attributes import set_committed_value

from storefront.catalog.filters import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    PaginatedResult,
    PaginationMetadata,
    ProductFilter,
    SortKey,
    SortOrder,
)
from storefront.catalog.models import Category, Product, Review, Shop
from storefront.domain.exceptions import (
    DomainError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

logger = structlog.get_logger()

_SORT_COLUMNS = {
    SortKey.PRICE: Product.price,
    SortKey.RATING: Product.rating,
    SortKey.CREATED_AT: Product.created_at,
}

_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"
_CHECK_VIOLATION = "23514"


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ProductRepository:
    """Repository for Product database operations.

    Holds a session factory rather than a session: every call opens its
    own short-lived session, so one instance is safe to share across
    concurrent requests and independent reads can run in parallel.

    Example usage:
        repo = ProductRepository(session_factory)
        result = await repo.find_with_filters(
            ProductFilter(min_price=Decimal("10"), sort_by=SortKey.PRICE),
        )
        print(result.metadata.total_pages)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        recent_review_limit: int = 3,
    ) -> None:
        """Initialize repository.

        Args:
            session_factory: Factory for async SQLAlchemy sessions.
            recent_review_limit: Reviews attached to a product detail.
        """
        self._session_factory = session_factory
        self.recent_review_limit = recent_review_limit

    # ========================================================================
    # Reads
    # ========================================================================

    async def find_by_id(self, product_id: int) -> Product | None:
        """Get a product with category, shop and recent reviews.

        Args:
            product_id: Product ID.

        Returns:
            Product if found, None otherwise.
        """
        async with self._session() as session:
            product = await session.scalar(self._base_query().where(Product.id == product_id))
            if product is None:
                return None
            await self._attach_recent_reviews(session, product)
            return product

    async def find_with_filters(self, filters: ProductFilter) -> PaginatedResult[Product]:
        """Find active products with filtering, sorting, and pagination.

        The page and the total count are fetched concurrently on
        separate sessions; the metadata always reflects the full
        filtered set.

        Args:
            filters: Query intent.

        Returns:
            Page of products with pagination metadata.
        """
        page = filters.page or DEFAULT_PAGE
        limit = filters.limit or DEFAULT_LIMIT
        conditions = self._build_conditions(filters)

        page_query = (
            self._base_query()
            .where(*conditions)
            .order_by(*self._build_order_by(filters))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_query = select(func.count(Product.id)).where(*conditions)

        products, total = await asyncio.gather(
            self._fetch_all(page_query),
            self._fetch_count(count_query),
        )

        return PaginatedResult(
            items=list(products),
            metadata=PaginationMetadata.from_counts(total, page, limit),
        )

    async def find_by_category(
        self,
        category_id: int,
        filters: ProductFilter | None = None,
    ) -> list[Product]:
        """Find active products in a category or any of its direct children.

        Args:
            category_id: Root category.
            filters: Optional extra constraints and ordering; its own
                category and pagination fields are ignored.

        Returns:
            Matching products.
        """
        async with self._session() as session:
            category_ids = list(
                await session.scalars(
                    select(Category.id).where(
                        or_(Category.id == category_id, Category.parent_id == category_id)
                    )
                )
            )
        if not category_ids:
            return []

        filters = filters or ProductFilter()
        query = (
            self._base_query()
            .where(
                Product.category_id.in_(category_ids),
                *self._build_conditions(filters, include_category=False),
            )
            .order_by(*self._build_order_by(filters))
        )
        return list(await self._fetch_all(query))

    async def find_by_shop(
        self,
        shop_id: int,
        filters: ProductFilter | None = None,
    ) -> list[Product]:
        """Find active products listed in a shop.

        Args:
            shop_id: Shop ID.
            filters: Optional extra constraints and ordering.

        Returns:
            Matching products.
        """
        filters = filters or ProductFilter()
        query = (
            self._base_query()
            .where(Product.shop_id == shop_id, *self._build_conditions(filters))
            .order_by(*self._build_order_by(filters))
        )
        return list(await self._fetch_all(query))

    async def find_by_seller(self, seller_id: int) -> list[Product]:
        """Find every product owned by a seller, active or not."""
        query = (
            self._base_query()
            .where(Product.seller_id == seller_id)
            .order_by(Product.created_at.desc(), Product.id.desc())
        )
        return list(await self._fetch_all(query))

    async def find_featured(self, limit: int = 10, min_rating: float = 4.0) -> list[Product]:
        """Find top-rated active products that are in stock.

        Args:
            limit: Maximum results.
            min_rating: Inclusive rating threshold.

        Returns:
            Products ordered by rating, best first.
        """
        query = (
            self._base_query()
            .where(
                Product.is_active.is_(True),
                Product.stock > 0,
                Product.rating >= min_rating,
            )
            .order_by(Product.rating.desc(), Product.id.asc())
            .limit(limit)
        )
        return list(await self._fetch_all(query))

    async def search(self, query_text: str) -> list[Product]:
        """Find active products whose name or description contains the text.

        Matching is case-insensitive.
        """
        pattern = _like_pattern(query_text.strip())
        query = (
            self._base_query()
            .where(
                Product.is_active.is_(True),
                or_(
                    Product.name.ilike(pattern, escape="\\"),
                    Product.description.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(Product.created_at.desc(), Product.id.desc())
        )
        return list(await self._fetch_all(query))

    # ========================================================================
    # Writes
    # ========================================================================

    async def create(self, data: dict[str, Any]) -> Product:
        """Insert a product after checking shop ownership.

        Args:
            data: Column values; must include ``shop_id`` and ``seller_id``.

        Returns:
            Created product with category and shop loaded.

        Raises:
            ValidationError: If the shop does not exist for that seller.
        """
        async with self._transaction() as session:
            shop_id = await session.scalar(
                select(Shop.id).where(
                    Shop.id == data["shop_id"],
                    Shop.seller_id == data["seller_id"],
                )
            )
            if shop_id is None:
                raise ValidationError("Invalid shop or seller ID")

            product = Product(**data)
            session.add(product)
            await session.flush()
            await session.refresh(product, attribute_names=["category", "shop"])
            set_committed_value(product, "reviews", [])

        logger.info(
            "Product created",
            product_id=product.id,
            shop_id=product.shop_id,
            sku=product.sku,
        )
        return product

    async def update(self, product_id: int, data: dict[str, Any]) -> Product:
        """Apply a partial update.

        Args:
            product_id: Product ID.
            data: Column values to change.

        Returns:
            Updated product.

        Raises:
            NotFoundError: If the product does not exist.
            ValidationError: If the update would change the owner, or move
                the product to a shop its seller does not own.
        """
        async with self._transaction() as session:
            product = await session.scalar(self._base_query().where(Product.id == product_id))
            if product is None:
                raise NotFoundError("Product", product_id)

            new_seller_id = data.get("seller_id")
            if new_seller_id is not None and new_seller_id != product.seller_id:
                raise ValidationError("Unauthorized to update this product")

            new_shop_id = data.get("shop_id")
            if new_shop_id is not None and new_shop_id != product.shop_id:
                owned = await session.scalar(
                    select(Shop.id).where(
                        Shop.id == new_shop_id,
                        Shop.seller_id == product.seller_id,
                    )
                )
                if owned is None:
                    raise ValidationError("Invalid shop or seller ID")

            for field_name, value in data.items():
                setattr(product, field_name, value)

            await session.flush()
            await session.refresh(product, attribute_names=["category", "shop"])
            await self._attach_recent_reviews(session, product)

        return product

    async def update_stock(self, product_id: int, delta: int) -> Product:
        """Adjust stock by a relative delta.

        The increment is executed by the database (``stock = stock +
        delta``) with a guard in the WHERE clause, so concurrent
        adjustments never lose updates or drive stock negative.

        Args:
            product_id: Product ID.
            delta: Units to add (positive) or remove (negative).

        Returns:
            Product with its new stock.

        Raises:
            NotFoundError: If the product does not exist.
            ValidationError: If stock would drop below zero.
        """
        async with self._transaction() as session:
            current = await session.scalar(select(Product.stock).where(Product.id == product_id))
            if current is None:
                raise NotFoundError("Product", product_id)
            if current + delta < 0:
                raise ValidationError("Insufficient stock")

            result = await session.execute(
                update(Product)
                .where(Product.id == product_id, Product.stock + delta >= 0)
                .values(stock=Product.stock + delta, updated_at=datetime.now(timezone.utc))
                .returning(Product.stock)
                .execution_options(synchronize_session=False)
            )
            if result.scalar_one_or_none() is None:
                # A concurrent adjustment consumed the stock after our read.
                raise ValidationError("Insufficient stock")

            product = await session.scalar(
                self._base_query()
                .where(Product.id == product_id)
                .execution_options(populate_existing=True)
            )
            await self._attach_recent_reviews(session, product)

        return product

    async def update_rating(self, product_id: int) -> Product:
        """Recompute a product's rating as the mean of its reviews (0 if none).

        Raises:
            NotFoundError: If the product does not exist.
        """
        async with self._transaction() as session:
            average = await session.scalar(
                select(func.avg(Review.rating)).where(Review.product_id == product_id)
            )
            result = await session.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(rating=float(average) if average is not None else 0.0)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Product", product_id)

            product = await session.scalar(
                self._base_query()
                .where(Product.id == product_id)
                .execution_options(populate_existing=True)
            )
            await self._attach_recent_reviews(session, product)

        return product

    async def delete(self, product_id: int) -> bool:
        """Delete a product.

        Raises:
            NotFoundError: If the product does not exist.
        """
        async with self._transaction() as session:
            result = await session.execute(
                delete(Product)
                .where(Product.id == product_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Product", product_id)

        logger.info("Product deleted", product_id=product_id)
        return True

    # ========================================================================
    # Query building
    # ========================================================================

    @staticmethod
    def _base_query() -> Select[tuple[Product]]:
        return select(Product).options(
            selectinload(Product.category),
            selectinload(Product.shop),
            raiseload(Product.reviews),
        )

    @staticmethod
    def _build_conditions(
        filters: ProductFilter,
        include_category: bool = True,
    ) -> list[Any]:
        """Build WHERE conditions from the fields present in a filter."""
        conditions: list[Any] = [Product.is_active.is_(True)]

        if include_category and filters.category_id is not None:
            category_scope = select(Category.id).where(
                or_(
                    Category.id == filters.category_id,
                    Category.parent_id == filters.category_id,
                )
            )
            conditions.append(Product.category_id.in_(category_scope))

        if filters.shop_id is not None:
            conditions.append(Product.shop_id == filters.shop_id)

        if filters.min_price is not None:
            conditions.append(Product.price >= filters.min_price)

        if filters.max_price is not None:
            conditions.append(Product.price <= filters.max_price)

        if filters.min_rating is not None:
            conditions.append(Product.rating >= filters.min_rating)

        if filters.in_stock:
            conditions.append(Product.stock > 0)

        if filters.search_query and filters.search_query.strip():
            pattern = _like_pattern(filters.search_query.strip())
            conditions.append(
                or_(
                    Product.name.ilike(pattern, escape="\\"),
                    Product.description.ilike(pattern, escape="\\"),
                )
            )

        return conditions

    @staticmethod
    def _build_order_by(filters: ProductFilter) -> list[Any]:
        """Build ORDER BY clauses; newest first when no sort key is given."""
        column = _SORT_COLUMNS[filters.sort_by or SortKey.CREATED_AT]
        if (filters.sort_order or SortOrder.DESC) is SortOrder.ASC:
            return [column.asc(), Product.id.asc()]
        return [column.desc(), Product.id.desc()]

    # ========================================================================
    # Session plumbing
    # ========================================================================

    async def _fetch_all(self, query: Select[tuple[Product]]) -> Sequence[Product]:
        async with self._session() as session:
            result = await session.scalars(query)
            products = result.all()
        # Listings never carry reviews.
        for product in products:
            set_committed_value(product, "reviews", [])
        return products

    async def _fetch_count(self, query: Select[tuple[int]]) -> int:
        async with self._session() as session:
            return int(await session.scalar(query) or 0)

    async def _attach_recent_reviews(self, session: AsyncSession, product: Product) -> None:
        reviews = await session.scalars(
            select(Review)
            .where(Review.product_id == product.id)
            .options(selectinload(Review.user))
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(self.recent_review_limit)
        )
        set_committed_value(product, "reviews", list(reviews))

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            raise self._map_error(e) from e

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session() as session:
            async with session.begin():
                yield session

    @staticmethod
    def _map_error(error: SQLAlchemyError) -> DomainError:
        """Map a store failure to the domain error taxonomy."""
        if isinstance(error, NoResultFound):
            return NotFoundError("Record")

        if isinstance(error, IntegrityError):
            orig = error.orig
            code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
            message = str(orig)

            if code == _UNIQUE_VIOLATION or "UNIQUE constraint failed" in message:
                logger.warning("Unique constraint violation", error=message)
                return ValidationError("Unique constraint violation")
            if code == _FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in message:
                logger.warning("Related record not found", error=message)
                return NotFoundError("Related record")
            if code == _CHECK_VIOLATION or "CHECK constraint failed" in message:
                logger.warning("Check constraint violation", error=message)
                return ValidationError("Value violates a catalog constraint")

        logger.error("Database error", error=str(error), error_type=type(error).__name__)
        return PersistenceError(f"Database error: {type(error).__name__}")
