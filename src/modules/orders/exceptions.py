"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.

Every order-placement failure carries a stable ``code`` and the
structured fields a caller needs to decide whether to retry:
validation and stock errors are actionable, persistence failures are not.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID


class OrderPlacementError(Exception):
    """Base class for caller-visible order failures."""

    code = "order_error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "detail": self.message}


class InvalidOrderInput(OrderPlacementError):
    """Malformed cart or address; rejected before any transaction opens."""

    code = "invalid_input"
    retryable = True

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "errors": self.errors}


class ProductNotFound(OrderPlacementError):
    """A product referenced by a cart line does not exist."""

    code = "product_not_found"
    retryable = True

    def __init__(self, product_id: UUID) -> None:
        super().__init__(f"Product {product_id} not found.")
        self.product_id = product_id

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "product_id": str(self.product_id)}


class InsufficientStock(OrderPlacementError):
    """Requested quantity exceeds the stock available at check time."""

    code = "insufficient_stock"
    retryable = True

    def __init__(self, product_id: UUID, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"available {available}, requested {requested}."
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "product_id": str(self.product_id),
            "available": self.available,
            "requested": self.requested,
        }


class PersistenceFailure(OrderPlacementError):
    """The store rejected the transaction (connection loss, constraint, commit)."""

    code = "internal_error"

    def __init__(self, message: str = "The order could not be recorded.") -> None:
        super().__init__(message)


class OrderNotFound(Exception):
    """The requested order does not exist (or is not visible to the caller)."""


class InvalidOrderStatus(Exception):
    """An invalid status transition was attempted."""
