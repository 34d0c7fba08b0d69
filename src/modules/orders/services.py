"""Order service layer (Use Cases).

Orchestrates order placement, order queries and staff status management.
Every write runs in exactly one ``UnitOfWork`` owned by the call.

Order placement flow::

    validate input ──► UnitOfWork(open)
                          ├─ StockReservationEngine.reserve()
                          └─ OrderWriter.write_order()
                       commit ──► CacheInvalidationCoordinator (best effort)
                       └─ any error ──► rollback, error returned to caller

Business rules enforced:
- Input is validated before a transaction opens.
- Stock never goes negative, even under concurrent placement.
- The order total is computed from prices read under lock, never from
  caller-supplied prices.
- A failure at any line leaves no decrement, order or line behind.
- Status transitions are validated against the state machine;
  cancellation returns reserved stock.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Union
from uuid import UUID

import structlog
from django.db import DatabaseError
from pydantic import ValidationError as PydanticValidationError

from modules.core.transactions import UnitOfWork
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CartLineDTO, PlaceOrderDTO
from modules.orders.exceptions import (
    InvalidOrderInput,
    InvalidOrderStatus,
    OrderNotFound,
    OrderPlacementError,
    PersistenceFailure,
)
from modules.orders.reservation import StockReservationEngine
from modules.orders.writer import OrderWriter

if TYPE_CHECKING:
    from modules.core.cache import CacheInvalidationCoordinator
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

CartLineInput = Union[CartLineDTO, Mapping[str, Any]]


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the cache invalidation coordinator via
    constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        invalidator: CacheInvalidationCoordinator,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._invalidator = invalidator
        self._reservation = StockReservationEngine(product_repository)
        self._writer = OrderWriter(order_repository)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def place_order(
        self,
        user_id: int,
        shipping_address: str,
        cart_lines: Iterable[CartLineInput],
    ) -> Order:
        """Reserve stock and record a ``pending`` order atomically.

        Steps:
        1. Validate the cart and address (no transaction yet).
        2. In one unit of work: reserve stock line by line, then insert
           the order header and its line items.
        3. After commit, invalidate cached product listings (best effort).
        4. Re-read the committed order with its items.

        Raises:
            InvalidOrderInput: empty cart, non-positive quantity, bad address.
            ProductNotFound: a cart line references a missing product.
            InsufficientStock: a cart line exceeds available stock.
            PersistenceFailure: the store rejected the transaction.
        """
        dto = self._validate(user_id, shipping_address, cart_lines)

        log = logger.bind(user_id=user_id, line_count=len(dto.items))
        log.info("order.placement_started")

        try:
            with UnitOfWork(name="order.place") as uow:
                reserved = self._reservation.reserve(dto.items)
                order = self._writer.write_order(
                    user_id=dto.user_id,
                    shipping_address=dto.shipping_address,
                    reserved_lines=reserved,
                )
        except OrderPlacementError as exc:
            log.info("order.placement_rejected", code=exc.code, reason=exc.message)
            raise
        except DatabaseError as exc:
            log.error(
                "order.placement_persistence_failure",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise PersistenceFailure() from exc

        log.info(
            "order.placed",
            order_id=str(order.id),
            total_amount=str(order.total_amount),
            transaction_id=uow.transaction_id,
        )
        self._invalidator.invalidate_after_order()

        return self._order_repo.get_by_id(order.id) or order

    def update_status(self, order_id: UUID, new_status: str) -> Order:
        """Transition an order to a new (non-cancelled) status.

        Acquires a row-level lock on the order before validating the
        transition.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: transition is not allowed, or is a
                cancellation (use ``cancel_order``).
        """
        if new_status == OrderStatus.CANCELLED:
            raise InvalidOrderStatus("Use cancel_order to cancel an order.")

        with UnitOfWork(name="order.update_status"):
            order = self._order_repo.get_for_update(order_id)
            if not order:
                raise OrderNotFound(f"Order {order_id} not found.")

            log = logger.bind(
                order_id=str(order_id),
                current_status=order.status,
                new_status=new_status,
            )
            if not order.can_transition_to(new_status):
                log.warning("order.invalid_transition")
                raise InvalidOrderStatus(
                    f"Cannot transition from {order.status} to {new_status}."
                )

            order.status = new_status
            self._order_repo.save(order)

        log.info("order.status_updated")
        return self._order_repo.get_by_id(order_id)

    def cancel_order(self, order_id: UUID) -> Order:
        """Cancel an order and return its quantities to stock.

        Locks the order row first so concurrent cancellations cannot
        release stock twice; product rows are then locked in pk order.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: cancellation not allowed from current status.
        """
        with UnitOfWork(name="order.cancel"):
            order = self._order_repo.get_for_update(order_id)
            if not order:
                raise OrderNotFound(f"Order {order_id} not found.")

            log = logger.bind(order_id=str(order_id), current_status=order.status)
            if not order.can_transition_to(OrderStatus.CANCELLED):
                log.warning("order.cancel_not_allowed")
                raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

            items = list(order.items.all())
            self._product_repo.lock_for_update(item.product_id for item in items)
            for item in items:
                self._product_repo.increment_stock(item.product_id, item.quantity)
                log.info(
                    "order.stock_released",
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                )

            order.status = OrderStatus.CANCELLED
            self._order_repo.save(order)

        log.info("order.cancelled")
        self._invalidator.invalidate_after_order()
        return self._order_repo.get_by_id(order_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any, user_id: Optional[int] = None) -> Order:
        """Retrieve a single order by ID.

        When ``user_id`` is given, orders owned by someone else are
        reported as missing.

        Raises:
            OrderNotFound: if the order does not exist or is not visible.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order or (user_id is not None and order.user_id != user_id):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self,
        user_id: Optional[int] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Order]:
        """Return orders, newest first, optionally restricted to one user."""
        filters = dict(filters or {})
        if user_id is not None:
            filters["user_id"] = user_id
        return self._order_repo.list(filters)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(
        user_id: int,
        shipping_address: str,
        cart_lines: Iterable[CartLineInput],
    ) -> PlaceOrderDTO:
        try:
            return PlaceOrderDTO(
                user_id=user_id,
                shipping_address=shipping_address,
                items=[
                    line if isinstance(line, CartLineDTO) else CartLineDTO(**line)
                    for line in cart_lines
                ],
            )
        except (PydanticValidationError, TypeError) as exc:
            errors = (
                exc.errors(include_url=False, include_context=False)
                if isinstance(exc, PydanticValidationError)
                else [{"msg": str(exc)}]
            )
            logger.info("order.validation_failed", user_id=user_id, errors=errors)
            raise InvalidOrderInput("Invalid order input.", errors=errors) from exc
