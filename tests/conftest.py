from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.core.cache import get_listing_cache
from modules.products.models import Category, Product

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_listing_cache():
    """Listing pages must not leak between tests (LocMem is process-wide)."""
    get_listing_cache().clear()
    yield
    get_listing_cache().clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def customer():
    return User.objects.create_user(
        username="customer", email="customer@example.com", password="customer123"
    )


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="staff", password="staff123", is_staff=True
    )


@pytest.fixture()
def customer_client(customer):
    """APIClient force-authenticated as a regular customer."""
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture()
def staff_client(staff_user):
    """APIClient force-authenticated as a staff user."""
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture()
def category():
    return Category.objects.create(name="Mugs")


@pytest.fixture()
def make_product(category):
    """Factory for persisted products."""

    def _make(name="Dev Mug", price="12.99", stock=50, **kwargs):
        return Product.objects.create(
            name=name,
            price=Decimal(price),
            stock_quantity=stock,
            category=kwargs.pop("category", category),
            **kwargs,
        )

    return _make
