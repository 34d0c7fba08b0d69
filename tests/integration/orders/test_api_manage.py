"""Integration tests for order queries and staff status management.

Covers:
- GET /api/v1/orders/ and /{id}/ visibility (own orders vs. staff).
- PATCH /api/v1/orders/{id}/ status transitions.
- POST /api/v1/orders/{id}/cancel/ with stock release.
"""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest

from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.wiring import build_listing_invalidator

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"
ADDRESS = "742 Evergreen Terrace, Springfield"


@pytest.fixture()
def place_order():
    service = OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        invalidator=build_listing_invalidator(),
    )

    def _place(user, product, quantity=1):
        return service.place_order(
            user.id, ADDRESS, [{"product_id": product.id, "quantity": quantity}]
        )

    return _place


@pytest.fixture()
def other_customer(django_user_model):
    return django_user_model.objects.create_user(username="other", password="other123")


class TestListOrders:
    def test_customer_sees_only_own_orders(
        self, customer_client, customer, other_customer, make_product, place_order
    ):
        mug = make_product()
        mine = place_order(customer, mug)
        place_order(other_customer, mug)

        response = customer_client.get(URL)

        assert response.status_code == 200
        assert [o["id"] for o in response.json()["results"]] == [str(mine.id)]

    def test_staff_sees_all_orders(
        self, staff_client, customer, other_customer, make_product, place_order
    ):
        mug = make_product()
        place_order(customer, mug)
        place_order(other_customer, mug)

        response = staff_client.get(URL)

        assert response.json()["count"] == 2

    def test_filter_by_status(self, staff_client, customer, make_product, place_order):
        mug = make_product()
        place_order(customer, mug)

        assert staff_client.get(URL, {"status": "pending"}).json()["count"] == 1
        assert staff_client.get(URL, {"status": "shipped"}).json()["count"] == 0

    def test_unauthenticated_returns_401(self, api_client):
        assert api_client.get(URL).status_code == 401


class TestRetrieveOrder:
    def test_owner_can_read(self, customer_client, customer, make_product, place_order):
        order = place_order(customer, make_product(price="12.99"), quantity=2)

        response = customer_client.get(f"{URL}{order.id}/")

        assert response.status_code == 200
        assert response.json()["total_amount"] == "25.98"
        assert response.json()["items"][0]["unit_price"] == "12.99"

    def test_other_users_order_is_404(
        self, customer_client, other_customer, make_product, place_order
    ):
        order = place_order(other_customer, make_product())
        assert customer_client.get(f"{URL}{order.id}/").status_code == 404

    def test_unknown_order_is_404(self, customer_client):
        assert customer_client.get(f"{URL}{uuid4()}/").status_code == 404


class TestStatusManagement:
    def test_staff_confirms_order(self, staff_client, customer, make_product, place_order):
        order = place_order(customer, make_product())

        response = staff_client.patch(
            f"{URL}{order.id}/", {"status": "confirmed"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

    def test_invalid_transition_is_400(
        self, staff_client, customer, make_product, place_order
    ):
        order = place_order(customer, make_product())

        response = staff_client.patch(
            f"{URL}{order.id}/", {"status": "delivered"}, format="json"
        )

        assert response.status_code == 400

    def test_cancel_through_patch_is_rejected(
        self, staff_client, customer, make_product, place_order
    ):
        order = place_order(customer, make_product())

        response = staff_client.patch(
            f"{URL}{order.id}/", {"status": "cancelled"}, format="json"
        )

        assert response.status_code == 400

    def test_customer_cannot_change_status(
        self, customer_client, customer, make_product, place_order
    ):
        order = place_order(customer, make_product())

        response = customer_client.patch(
            f"{URL}{order.id}/", {"status": "confirmed"}, format="json"
        )

        assert response.status_code == 403


class TestCancel:
    def test_cancel_releases_stock(self, staff_client, customer, make_product, place_order):
        mug = make_product(stock=5)
        order = place_order(customer, mug, quantity=3)

        response = staff_client.post(f"{URL}{order.id}/cancel/")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        mug.refresh_from_db()
        assert mug.stock_quantity == 5

    def test_cancel_twice_is_400(self, staff_client, customer, make_product, place_order):
        mug = make_product(stock=5)
        order = place_order(customer, mug, quantity=3)
        staff_client.post(f"{URL}{order.id}/cancel/")

        response = staff_client.post(f"{URL}{order.id}/cancel/")

        assert response.status_code == 400
        mug.refresh_from_db()
        assert mug.stock_quantity == 5

    def test_cancel_unknown_order_is_404(self, staff_client):
        assert staff_client.post(f"{URL}{uuid4()}/cancel/").status_code == 404

    def test_cancel_with_malformed_id_is_400(self, staff_client):
        assert staff_client.post(f"{URL}not-a-uuid/cancel/").status_code == 400

    def test_service_value_error_is_not_reported_as_bad_id(
        self, staff_client, customer, make_product, place_order
    ):
        order = place_order(customer, make_product(stock=5))

        with patch.object(
            OrderService, "cancel_order", side_effect=ValueError("bad stock row")
        ):
            with pytest.raises(ValueError, match="bad stock row"):
                staff_client.post(f"{URL}{order.id}/cancel/")

    def test_patch_with_malformed_id_is_400(self, staff_client):
        response = staff_client.patch(
            f"{URL}not-a-uuid/", {"status": "confirmed"}, format="json"
        )
        assert response.status_code == 400
