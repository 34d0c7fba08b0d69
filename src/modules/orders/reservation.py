"""Stock reservation engine.

Checks and decrements stock for every line of a cart inside the caller's
unit of work.  The whole reservation fails on the first unavailable line;
the enclosing transaction then rolls back every decrement already made.

Oversell protection is layered:

1. All product rows named by the cart are locked (``SELECT ... FOR
   UPDATE``) up front, in primary-key order.  Concurrent carts touching
   the same products serialize on these locks without deadlocking, and
   the locks are held until the transaction ends.
2. Each decrement is a conditional ``UPDATE`` that only applies when
   ``stock_quantity >= quantity``.  Zero affected rows means the stock was
   not there, so the guard holds even on backends where row locks are a
   no-op (SQLite).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

import structlog

from modules.orders.dtos import ReservedLine
from modules.orders.exceptions import InsufficientStock, ProductNotFound

if TYPE_CHECKING:
    from modules.orders.dtos import CartLineDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class StockReservationEngine:
    """Reserves stock for a validated cart.  Must run inside a transaction."""

    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    def reserve(self, cart_lines: Sequence[CartLineDTO]) -> List[ReservedLine]:
        """Decrement stock for each line, in the order submitted.

        Returns one ``ReservedLine`` per cart line carrying the unit price
        read under lock.

        Raises:
            ProductNotFound: a line references a missing product.
            InsufficientStock: a line asks for more than is available.
        """
        self._product_repo.lock_for_update(line.product_id for line in cart_lines)

        reserved: List[ReservedLine] = []
        for line in cart_lines:
            reserved.append(self._reserve_line(line))
        return reserved

    def _reserve_line(self, line: CartLineDTO) -> ReservedLine:
        log = logger.bind(product_id=str(line.product_id), requested=line.quantity)

        # Re-read under lock: an earlier line of the same cart may already
        # have decremented this product.
        product = self._product_repo.get_for_update(line.product_id)
        if product is None:
            log.info("reservation.product_not_found")
            raise ProductNotFound(line.product_id)

        if product.stock_quantity < line.quantity:
            log.info("reservation.insufficient_stock", available=product.stock_quantity)
            raise InsufficientStock(
                product_id=line.product_id,
                available=product.stock_quantity,
                requested=line.quantity,
            )

        if not self._product_repo.decrement_stock(line.product_id, line.quantity):
            available = self._product_repo.get_stock(line.product_id) or 0
            log.warning("reservation.guarded_decrement_rejected", available=available)
            raise InsufficientStock(
                product_id=line.product_id,
                available=available,
                requested=line.quantity,
            )

        log.info(
            "reservation.line_reserved",
            unit_price=str(product.price),
            remaining=product.stock_quantity - line.quantity,
        )
        return ReservedLine(
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=product.price,
        )
