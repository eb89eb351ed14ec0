"""Product Catalog Service.

Provides product persistence, filtered listings, caching and image
handling for a multi-seller marketplace.
"""

from storefront.catalog.filters import (
    PaginatedResult,
    PaginationMetadata,
    ProductFilter,
    SortKey,
    SortOrder,
)
from storefront.catalog.models import Category, Product, Review, Shop, User
from storefront.catalog.repository import ProductRepository
from storefront.catalog.schemas import (
    ImageUpload,
    ProductCreateDTO,
    ProductRead,
    ProductUpdateDTO,
)
from storefront.catalog.service import CatalogService

__all__ = [
    # Models
    "Category",
    "Product",
    "Review",
    "Shop",
    "User",
    # Filters
    "PaginatedResult",
    "PaginationMetadata",
    "ProductFilter",
    "SortKey",
    "SortOrder",
    # DTOs
    "ImageUpload",
    "ProductCreateDTO",
    "ProductRead",
    "ProductUpdateDTO",
    # Repository
    "ProductRepository",
    # Service
    "CatalogService",
]
