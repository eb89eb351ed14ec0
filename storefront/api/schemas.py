"""Pydantic schemas for API requests and responses."""

from typing import Any

from pydantic import BaseModel, Field

from storefront.catalog.schemas import ProductRead

# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors return this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(
        default_factory=dict, description="Additional error context"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class PaginationSchema(BaseModel):
    """Pagination metadata for a product listing."""

    total: int = Field(..., description="Total number of matching products")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Number of pages")
    has_next_page: bool = Field(..., description="Whether a later page exists")
    has_prev_page: bool = Field(..., description="Whether an earlier page exists")


# ============================================================================
# Product Schemas
# ============================================================================


class ProductListResponse(BaseModel):
    """One page of products."""

    items: list[ProductRead] = Field(..., description="Products on this page")
    pagination: PaginationSchema = Field(..., description="Pagination metadata")


class StockUpdateRequest(BaseModel):
    """Relative stock adjustment."""

    quantity: int = Field(
        ...,
        description="Signed amount to add to stock (negative to remove)",
        examples=[5, -2],
    )


class DeleteResponse(BaseModel):
    """Result of a delete operation."""

    deleted: bool = Field(..., description="Whether the product was deleted")
