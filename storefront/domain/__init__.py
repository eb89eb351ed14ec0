"""Domain layer - exceptions and domain events for the catalog."""

from storefront.domain.base import DomainEvent
from storefront.domain.events import (
    EVENT_REGISTRY,
    ProductCreated,
    ProductDeleted,
    ProductStockUpdated,
    ProductUpdated,
)
from storefront.domain.exceptions import (
    AuthorizationError,
    DomainError,
    NotFoundError,
    PersistenceError,
    StorageError,
    ValidationError,
)

__all__ = [
    # Events
    "DomainEvent",
    "EVENT_REGISTRY",
    "ProductCreated",
    "ProductDeleted",
    "ProductStockUpdated",
    "ProductUpdated",
    # Exceptions
    "AuthorizationError",
    "DomainError",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
    "ValidationError",
]
