"""Product repository interface.

Extends ``IRepository[Product]`` with the inventory-store operations the
order placement core depends on: row locking and guarded stock updates.
All of them must be called inside an open transaction.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Category, Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_for_update(self, id: UUID) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` if the product does not exist.
        """

    @abstractmethod
    def lock_for_update(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """Lock every existing product in ``ids``, acquiring locks in pk order.

        Missing ids are simply absent from the returned mapping.
        """

    @abstractmethod
    def decrement_stock(self, id: UUID, quantity: int) -> int:
        """Atomically subtract ``quantity`` if at least that much remains.

        Returns the number of affected rows: ``1`` on success, ``0`` when the
        product is missing or the remaining stock is insufficient.
        """

    @abstractmethod
    def increment_stock(self, id: UUID, quantity: int) -> int:
        """Atomically add ``quantity`` to the stock counter."""

    @abstractmethod
    def get_stock(self, id: UUID) -> Optional[int]:
        """Return the current stock counter, or ``None`` if missing."""

    @abstractmethod
    def page(
        self,
        offset: int,
        limit: int,
        category: Optional[UUID] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Product], int]:
        """Return one listing page and the total number of matching rows."""

    @abstractmethod
    def get_category(self, id: UUID) -> Optional[Category]:
        """Retrieve a category by primary key."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List products with optional filters."""
