"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CartLineDTO``: one requested (product, quantity) pair.
- ``PlaceOrderDTO``: validated order intake (cart + shipping address).
- ``ReservedLine``: a cart line after stock reservation, with the
  captured unit price.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.orders.constants import SHIPPING_ADDRESS_MIN_LENGTH


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CartLineDTO(BaseModel):
    """Immutable DTO for a single cart line.

    The caller sends only ``product_id`` and ``quantity``; the unit price
    is resolved from the catalog during reservation.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class PlaceOrderDTO(BaseModel):
    """Immutable DTO for order placement requests.

    Validates:
    - ``items`` must contain at least one line.
    - Each line quantity must be positive.
    - ``shipping_address`` must be a meaningful, non-blank address.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    shipping_address: str
    items: List[CartLineDTO]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[CartLineDTO]) -> List[CartLineDTO]:
        if not v:
            raise ValueError("Order must contain at least one item.")
        return v

    @field_validator("shipping_address")
    @classmethod
    def address_must_be_complete(cls, v: str) -> str:
        v = v.strip()
        if len(v) < SHIPPING_ADDRESS_MIN_LENGTH:
            raise ValueError(
                "Shipping address must be at least "
                f"{SHIPPING_ADDRESS_MIN_LENGTH} characters."
            )
        return v


@dataclass(frozen=True)
class ReservedLine:
    """A cart line whose stock has been decremented inside the transaction."""

    product_id: UUID
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity
