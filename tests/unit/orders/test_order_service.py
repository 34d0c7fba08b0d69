"""Unit tests for OrderService with mocked repositories.

Covers:
- Input validation before any transaction opens.
- Placement flow (reserve, write, invalidate, re-read).
- Error propagation and persistence failure mapping.
- Status transitions and cancellation with stock release.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from django.db import DatabaseError, OperationalError

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import (
    InsufficientStock,
    InvalidOrderInput,
    InvalidOrderStatus,
    OrderNotFound,
    PersistenceFailure,
    ProductNotFound,
)
from modules.orders.services import OrderService

pytestmark = pytest.mark.unit

ADDRESS = "742 Evergreen Terrace, Springfield"


class StubOrder(SimpleNamespace):
    def can_transition_to(self, new_status):
        from modules.orders.constants import VALID_TRANSITIONS

        return new_status in VALID_TRANSITIONS.get(self.status, set())


@pytest.fixture()
def product():
    return SimpleNamespace(id=uuid4(), stock_quantity=5, price=Decimal("12.99"))


@pytest.fixture()
def product_repo(product):
    repo = MagicMock()
    repo.get_for_update.return_value = product
    repo.decrement_stock.return_value = 1
    return repo


@pytest.fixture()
def order_repo():
    repo = MagicMock()
    order = StubOrder(id=uuid4(), total_amount=Decimal("25.98"))
    repo.insert_order.return_value = order
    repo.get_by_id.return_value = order
    return repo


@pytest.fixture()
def invalidator():
    return MagicMock()


@pytest.fixture()
def service(order_repo, product_repo, invalidator):
    return OrderService(
        order_repository=order_repo,
        product_repository=product_repo,
        invalidator=invalidator,
    )


# ===========================================================================
# Validation
# ===========================================================================


class TestPlaceOrderValidation:
    def test_empty_cart_rejected_before_transaction(self, service, product_repo):
        with patch("modules.orders.services.UnitOfWork") as uow:
            with pytest.raises(InvalidOrderInput) as exc_info:
                service.place_order(1, ADDRESS, [])

        uow.assert_not_called()
        product_repo.lock_for_update.assert_not_called()
        assert exc_info.value.code == "invalid_input"
        assert exc_info.value.errors

    def test_zero_quantity_rejected(self, service, product):
        with pytest.raises(InvalidOrderInput):
            service.place_order(1, ADDRESS, [{"product_id": product.id, "quantity": 0}])

    def test_short_address_rejected(self, service, product):
        with pytest.raises(InvalidOrderInput):
            service.place_order(1, "nowhere", [{"product_id": product.id, "quantity": 1}])

    def test_malformed_line_rejected(self, service):
        with pytest.raises(InvalidOrderInput):
            service.place_order(1, ADDRESS, ["not-a-line"])

    def test_invalid_input_does_not_invalidate_cache(self, service, invalidator):
        with pytest.raises(InvalidOrderInput):
            service.place_order(1, ADDRESS, [])
        invalidator.invalidate_after_order.assert_not_called()


# ===========================================================================
# Placement
# ===========================================================================


class TestPlaceOrder:
    def test_success_flow(self, service, order_repo, product_repo, invalidator, product):
        order = service.place_order(
            1, ADDRESS, [{"product_id": product.id, "quantity": 2}]
        )

        product_repo.decrement_stock.assert_called_once_with(product.id, 2)
        order_repo.insert_order.assert_called_once_with(
            user_id=1, total_amount=Decimal("25.98"), shipping_address=ADDRESS
        )
        order_repo.insert_order_line.assert_called_once()
        invalidator.invalidate_after_order.assert_called_once()
        order_repo.get_by_id.assert_called_once_with(order.id)

    def test_insufficient_stock_propagates_without_invalidation(
        self, service, order_repo, product_repo, invalidator, product
    ):
        product.stock_quantity = 1

        with pytest.raises(InsufficientStock):
            service.place_order(1, ADDRESS, [{"product_id": product.id, "quantity": 2}])

        order_repo.insert_order.assert_not_called()
        invalidator.invalidate_after_order.assert_not_called()

    def test_missing_product_propagates(self, service, product_repo, invalidator):
        product_repo.get_for_update.return_value = None

        with pytest.raises(ProductNotFound):
            service.place_order(1, ADDRESS, [{"product_id": uuid4(), "quantity": 1}])

        invalidator.invalidate_after_order.assert_not_called()

    @pytest.mark.parametrize("error", [DatabaseError("gone"), OperationalError("lost")])
    def test_database_error_becomes_persistence_failure(
        self, service, order_repo, invalidator, product, error
    ):
        order_repo.insert_order_line.side_effect = error

        with pytest.raises(PersistenceFailure) as exc_info:
            service.place_order(1, ADDRESS, [{"product_id": product.id, "quantity": 1}])

        assert exc_info.value.code == "internal_error"
        assert exc_info.value.__cause__ is error
        invalidator.invalidate_after_order.assert_not_called()

    def test_cache_failure_does_not_fail_committed_order(
        self, order_repo, product_repo, product
    ):
        from modules.core.cache import CacheInvalidationCoordinator

        cache = MagicMock()
        cache.delete_pattern.side_effect = ConnectionError("redis down")
        service = OrderService(
            order_repository=order_repo,
            product_repository=product_repo,
            invalidator=CacheInvalidationCoordinator(cache, ["products:*"]),
        )

        order = service.place_order(
            1, ADDRESS, [{"product_id": product.id, "quantity": 1}]
        )

        assert order is order_repo.get_by_id.return_value


# ===========================================================================
# Status management
# ===========================================================================


class TestUpdateStatus:
    def test_valid_transition(self, service, order_repo):
        order = StubOrder(id=uuid4(), status=OrderStatus.PENDING)
        order_repo.get_for_update.return_value = order

        service.update_status(order.id, OrderStatus.CONFIRMED)

        assert order.status == OrderStatus.CONFIRMED
        order_repo.save.assert_called_once_with(order)

    def test_invalid_transition(self, service, order_repo):
        order = StubOrder(id=uuid4(), status=OrderStatus.PENDING)
        order_repo.get_for_update.return_value = order

        with pytest.raises(InvalidOrderStatus):
            service.update_status(order.id, OrderStatus.DELIVERED)
        order_repo.save.assert_not_called()

    def test_cancel_via_update_is_rejected(self, service, order_repo):
        with pytest.raises(InvalidOrderStatus, match="cancel_order"):
            service.update_status(uuid4(), OrderStatus.CANCELLED)
        order_repo.get_for_update.assert_not_called()

    def test_missing_order(self, service, order_repo):
        order_repo.get_for_update.return_value = None
        with pytest.raises(OrderNotFound):
            service.update_status(uuid4(), OrderStatus.CONFIRMED)


class TestCancelOrder:
    def test_releases_stock_and_invalidates(
        self, service, order_repo, product_repo, invalidator
    ):
        a, b = uuid4(), uuid4()
        items = [
            SimpleNamespace(product_id=a, quantity=2),
            SimpleNamespace(product_id=b, quantity=1),
        ]
        order = StubOrder(
            id=uuid4(),
            status=OrderStatus.CONFIRMED,
            items=MagicMock(all=MagicMock(return_value=items)),
        )
        order_repo.get_for_update.return_value = order

        service.cancel_order(order.id)

        assert order.status == OrderStatus.CANCELLED
        product_repo.increment_stock.assert_any_call(a, 2)
        product_repo.increment_stock.assert_any_call(b, 1)
        invalidator.invalidate_after_order.assert_called_once()

    def test_shipped_order_cannot_be_cancelled(
        self, service, order_repo, product_repo, invalidator
    ):
        order_repo.get_for_update.return_value = StubOrder(
            id=uuid4(), status=OrderStatus.SHIPPED
        )

        with pytest.raises(InvalidOrderStatus):
            service.cancel_order(uuid4())

        product_repo.increment_stock.assert_not_called()
        invalidator.invalidate_after_order.assert_not_called()


# ===========================================================================
# Queries
# ===========================================================================


class TestQueries:
    def test_get_order_hides_other_users_orders(self, service, order_repo):
        order_repo.get_by_id.return_value = StubOrder(id=uuid4(), user_id=2)
        with pytest.raises(OrderNotFound):
            service.get_order(uuid4(), user_id=1)

    def test_get_order_for_owner(self, service, order_repo):
        order = StubOrder(id=uuid4(), user_id=1)
        order_repo.get_by_id.return_value = order
        assert service.get_order(order.id, user_id=1) is order

    def test_list_orders_scopes_to_user(self, service, order_repo):
        service.list_orders(user_id=7, filters={"status": "pending"})
        order_repo.list.assert_called_once_with({"status": "pending", "user_id": 7})
