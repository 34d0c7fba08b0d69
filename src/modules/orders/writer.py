"""Order writer: persists the order header and its line items.

Runs in the same unit of work as the stock reservation, so an order and
its lines are committed together with the decrements or not at all.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Sequence

import structlog

from modules.orders.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS
from modules.orders.exceptions import InvalidOrderInput

if TYPE_CHECKING:
    from modules.orders.dtos import ReservedLine
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

# Smallest amount that no longer fits a money column.
MONEY_LIMIT = Decimal(10) ** (MONEY_MAX_DIGITS - MONEY_DECIMAL_PLACES)
MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)


class OrderWriter:
    def __init__(self, order_repository: IOrderRepository) -> None:
        self._order_repo = order_repository

    @staticmethod
    def total_for(reserved_lines: Sequence[ReservedLine]) -> Decimal:
        """Sum of ``unit_price * quantity`` over the reserved lines."""
        return sum((line.subtotal for line in reserved_lines), Decimal("0.00"))

    @staticmethod
    def _check_amounts(
        reserved_lines: Sequence[ReservedLine], total_amount: Decimal
    ) -> None:
        errors = [
            {
                "loc": ["items", index, "subtotal"],
                "msg": f"Line subtotal must be below {MONEY_LIMIT}.",
                "type": "amount_too_large",
            }
            for index, line in enumerate(reserved_lines)
            if line.subtotal.quantize(MONEY_QUANTUM) >= MONEY_LIMIT
        ]
        if total_amount.quantize(MONEY_QUANTUM) >= MONEY_LIMIT:
            errors.append(
                {
                    "loc": ["total_amount"],
                    "msg": f"Order total must be below {MONEY_LIMIT}.",
                    "type": "amount_too_large",
                }
            )
        if errors:
            raise InvalidOrderInput("Order total is too large.", errors=errors)

    def write_order(
        self,
        user_id: int,
        shipping_address: str,
        reserved_lines: Sequence[ReservedLine],
    ) -> Order:
        """Insert one ``pending`` order and one line item per reserved line.

        Raises:
            InvalidOrderInput: ``reserved_lines`` is empty, or the total or a
                line subtotal does not fit the money columns.  Nothing is
                inserted in that case.
            django.db.DatabaseError: any insert failed; the caller's
                transaction must be rolled back.
        """
        if not reserved_lines:
            raise InvalidOrderInput("Order must contain at least one item.")

        total_amount = self.total_for(reserved_lines)
        self._check_amounts(reserved_lines, total_amount)

        order = self._order_repo.insert_order(
            user_id=user_id,
            total_amount=total_amount,
            shipping_address=shipping_address,
        )
        for line in reserved_lines:
            self._order_repo.insert_order_line(
                order_id=order.id,
                product_id=line.product_id,
                unit_price=line.unit_price,
                quantity=line.quantity,
            )

        logger.info(
            "order.written",
            order_id=str(order.id),
            item_count=len(reserved_lines),
            total_amount=str(total_amount),
        )
        return order
