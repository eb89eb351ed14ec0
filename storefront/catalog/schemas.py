"""Catalog data transfer objects and read models.

Inbound DTOs are plain dataclasses so the service can check every field
and report all violations together. Read models are pydantic so they can
be built from ORM rows and round-trip through the JSON cache.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

# ============================================================================
# Inbound DTOs
# ============================================================================


@dataclass(frozen=True)
class ImageUpload:
    """Image file attached to a create or update request."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        """Size in bytes."""
        return len(self.data)


@dataclass
class ProductCreateDTO:
    """Product creation request."""

    name: str
    price: Decimal
    category_id: int
    shop_id: int
    seller_id: int
    stock: int = 0
    description: str | None = None
    discount: int | None = None
    images: list[ImageUpload] = field(default_factory=list)


@dataclass
class ProductUpdateDTO:
    """Partial product update request.

    ``None`` means "leave unchanged". Image changes are expressed as
    uploads to append and URLs to remove.
    """

    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    stock: int | None = None
    discount: int | None = None
    category_id: int | None = None
    shop_id: int | None = None
    seller_id: int | None = None
    images: list[ImageUpload] = field(default_factory=list)
    images_to_delete: list[str] = field(default_factory=list)

    def field_values(self) -> dict[str, Any]:
        """Scalar fields that were provided."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in ("images", "images_to_delete") and getattr(self, f.name) is not None
        }

    def changed_fields(self) -> list[str]:
        """Names of everything this update touches."""
        changed = list(self.field_values())
        if self.images or self.images_to_delete:
            changed.append("images")
        return changed


# ============================================================================
# Read Models
# ============================================================================


class CategorySummary(BaseModel):
    """Category attached to a product."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    parent_id: int | None = None


class ShopSummary(BaseModel):
    """Shop attached to a product."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    rating: float
    is_verified: bool


class ReviewerSummary(BaseModel):
    """Reviewer display data."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    avatar: str | None = None


class ReviewSummary(BaseModel):
    """Recent review shown with a product."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    rating: int
    comment: str | None = None
    created_at: datetime
    user: ReviewerSummary


class ProductRead(BaseModel):
    """Product as returned to callers and stored in the cache."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    price: Decimal
    stock: int
    discount: int | None = None
    category_id: int
    shop_id: int
    seller_id: int
    images: list[str]
    rating: float
    is_active: bool
    sku: str
    created_at: datetime
    updated_at: datetime
    category: CategorySummary | None = None
    shop: ShopSummary | None = None
    reviews: list[ReviewSummary] = []
