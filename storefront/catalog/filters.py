"""Query intent and paginated result types for catalog listings."""

import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Generic, TypeVar

from storefront.domain.exceptions import ValidationError

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


class SortKey(str, Enum):
    """Fields a listing may be ordered by."""

    PRICE = "price"
    RATING = "rating"
    CREATED_AT = "createdAt"


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class ProductFilter:
    """Filter parameters for product listings.

    Every field is optional and ``None`` means "no constraint". Built
    once per request and never mutated.

    Attributes:
        category_id: Restrict to a category and its direct children.
        shop_id: Restrict to one shop.
        min_price: Inclusive lower price bound.
        max_price: Inclusive upper price bound.
        min_rating: Inclusive lower rating bound.
        search_query: Case-insensitive text matched against name or description.
        in_stock: Only products with stock above zero when True.
        sort_by: Sort key; newest first when absent.
        sort_order: Sort direction; descending when absent.
        page: 1-based page number.
        limit: Page size.
    """

    category_id: int | None = None
    shop_id: int | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    min_rating: float | None = None
    search_query: str | None = None
    in_stock: bool | None = None
    sort_by: SortKey | None = None
    sort_order: SortOrder | None = None
    page: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        errors = []

        if self.sort_by is not None and not isinstance(self.sort_by, SortKey):
            try:
                object.__setattr__(self, "sort_by", SortKey(self.sort_by))
            except ValueError:
                allowed = ", ".join(k.value for k in SortKey)
                errors.append(f"sort_by must be one of: {allowed}")

        if self.sort_order is not None and not isinstance(self.sort_order, SortOrder):
            try:
                object.__setattr__(self, "sort_order", SortOrder(str(self.sort_order).lower()))
            except ValueError:
                errors.append("sort_order must be 'asc' or 'desc'")

        if self.page is not None and self.page < 1:
            errors.append("page must be at least 1")

        if self.limit is not None and self.limit < 1:
            errors.append("limit must be at least 1")

        if errors:
            raise ValidationError(errors)


@dataclass(frozen=True)
class PaginationMetadata:
    """Pagination facts about one page of a filtered listing."""

    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def from_counts(cls, total: int, page: int, limit: int) -> "PaginationMetadata":
        """Build metadata from the full match count.

        Args:
            total: Number of rows matching the filter, across all pages.
            page: 1-based page number.
            limit: Page size.

        Returns:
            Metadata for the page.
        """
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
            has_next_page=page * limit < total,
            has_prev_page=page > 1,
        )


@dataclass(frozen=True)
class PaginatedResult(Generic[T]):
    """Paginated result container.

    Items and metadata are separate fields; the item list carries
    nothing but items.
    """

    items: list[T] = field(default_factory=list)
    metadata: PaginationMetadata = field(
        default_factory=lambda: PaginationMetadata.from_counts(0, DEFAULT_PAGE, DEFAULT_LIMIT)
    )
