"""Domain exceptions.

The catalog raises a small, closed set of error kinds. The HTTP layer
renders each kind to its own status code, so callers must never see a
bare Exception for a condition listed here.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """Raised when input is malformed or out of range.

    Carries every violation found, not only the first one.
    """

    error_code = "VALIDATION_ERROR"

    def __init__(self, errors: str | list[str]) -> None:
        """Initialize validation error.

        Args:
            errors: One message or the full list of violations.
        """
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__(", ".join(self.errors), details={"errors": self.errors})


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any = None) -> None:
        """Initialize not found error.

        Args:
            entity: Entity type name (e.g., "Product").
            entity_id: Identifier that was looked up, if known.
        """
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message, details={"entity": entity, "entity_id": entity_id})


class AuthorizationError(DomainError):
    """Raised when the acting seller does not own the resource."""

    error_code = "FORBIDDEN"

    def __init__(self, message: str, resource_id: Any = None, requester_id: Any = None) -> None:
        """Initialize authorization error.

        Args:
            message: Human-readable error message.
            resource_id: ID of the protected resource.
            requester_id: ID of the actor that was refused.
        """
        super().__init__(
            message,
            details={"resource_id": resource_id, "requester_id": requester_id},
        )


class PersistenceError(DomainError):
    """Raised for store failures that fit no narrower kind."""

    error_code = "PERSISTENCE_ERROR"


class StorageError(DomainError):
    """Raised when the blob store fails to upload or delete an asset."""

    error_code = "STORAGE_ERROR"

    def __init__(self, message: str, operation: str, target: str | None = None) -> None:
        """Initialize storage error.

        Args:
            message: Human-readable error message.
            operation: Blob operation that failed ("upload" or "delete").
            target: Object name or URL involved.
        """
        super().__init__(message, details={"operation": operation, "target": target})
        self.operation = operation
        self.target = target
