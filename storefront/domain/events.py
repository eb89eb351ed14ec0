"""Domain events for the product catalog.

Published after a catalog mutation has been committed. Subscribers use
them for inventory tracking, auditing and downstream cache work.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from storefront.domain.base import DomainEvent


@dataclass(frozen=True)
class ProductCreated(DomainEvent):
    """Event raised when a product is created."""

    event_type: ClassVar[str] = "product:created"

    product_id: int = 0
    seller_id: int = 0
    shop_id: int = 0

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "seller_id": self.seller_id,
            "shop_id": self.shop_id,
        }


@dataclass(frozen=True)
class ProductUpdated(DomainEvent):
    """Event raised when product fields or images change."""

    event_type: ClassVar[str] = "product:updated"

    product_id: int = 0
    seller_id: int = 0
    updates: tuple[str, ...] = ()

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "seller_id": self.seller_id,
            "updates": list(self.updates),
        }


@dataclass(frozen=True)
class ProductDeleted(DomainEvent):
    """Event raised when a product is deleted."""

    event_type: ClassVar[str] = "product:deleted"

    product_id: int = 0
    seller_id: int = 0

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "seller_id": self.seller_id,
        }


@dataclass(frozen=True)
class ProductStockUpdated(DomainEvent):
    """Event raised when stock is adjusted by a relative delta."""

    event_type: ClassVar[str] = "product:stock_updated"

    product_id: int = 0
    seller_id: int = 0
    previous_stock: int = 0
    new_stock: int = 0
    change: int = 0

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "product_id": self.product_id,
            "seller_id": self.seller_id,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "change": self.change,
        }


EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    ProductCreated.event_type: ProductCreated,
    ProductUpdated.event_type: ProductUpdated,
    ProductDeleted.event_type: ProductDeleted,
    ProductStockUpdated.event_type: ProductStockUpdated,
}
