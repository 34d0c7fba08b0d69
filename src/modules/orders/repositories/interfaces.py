"""Order repository interface.

Extends ``IRepository[Order]`` with the order-ledger operations used by
the order writer (header and line inserts inside the caller's
transaction) and by status management (row-locked reads).

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes its OrderItem children.  ``insert_order``
    and ``insert_order_line`` do not open their own transaction; callers
    run them inside the same unit of work as the stock reservation.
    """

    @abstractmethod
    def insert_order(
        self,
        user_id: int,
        total_amount: Decimal,
        shipping_address: str,
    ) -> Order:
        """Insert an order header in status ``pending``."""

    @abstractmethod
    def insert_order_line(
        self,
        order_id: UUID,
        product_id: UUID,
        unit_price: Decimal,
        quantity: int,
    ) -> OrderItem:
        """Insert one line item for ``order_id``."""

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with prefetched items."""

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""
