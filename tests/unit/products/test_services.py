"""Unit tests for ProductService.

Covers:
- Read-through listing cache (hit, miss, cache outage).
- Catalog writes invalidate listings after commit.
- Stock management rules (restock >= 1, adjustment >= 0).
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from modules.core.cache import get_listing_cache
from modules.products.constants import listing_cache_key
from modules.products.dtos import CreateProductDTO, ListingQueryDTO, UpdateProductDTO
from modules.products.exceptions import (
    CategoryNotFound,
    InvalidStockAdjustment,
    ProductNotFound,
)
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import ProductService

pytestmark = pytest.mark.unit


@pytest.fixture()
def invalidator():
    return MagicMock()


@pytest.fixture()
def service(invalidator):
    return ProductService(
        repository=ProductDjangoRepository(),
        cache=get_listing_cache(),
        invalidator=invalidator,
    )


# ===========================================================================
# Listing cache
# ===========================================================================


class TestListingCache:
    def test_miss_reads_database_and_fills_cache(self, service, make_product):
        make_product(name="Dev Mug")
        query = ListingQueryDTO(page=1, limit=12)

        page = service.list_products_page(query)

        assert page["total"] == 1
        assert page["items"][0]["name"] == "Dev Mug"
        assert get_listing_cache().get(listing_cache_key(1, 12)) == page

    def test_hit_is_served_without_database(self, invalidator):
        repo = MagicMock()
        cache = MagicMock()
        cache.get.return_value = {"items": [], "page": 1, "limit": 12, "total": 0}
        service = ProductService(repository=repo, cache=cache, invalidator=invalidator)

        page = service.list_products_page(ListingQueryDTO())

        assert page["total"] == 0
        repo.page.assert_not_called()

    def test_cache_read_failure_falls_back_to_database(self, invalidator, make_product):
        make_product()
        cache = MagicMock()
        cache.get.side_effect = ConnectionError("redis down")
        cache.set.side_effect = ConnectionError("redis down")
        service = ProductService(
            repository=ProductDjangoRepository(), cache=cache, invalidator=invalidator
        )

        page = service.list_products_page(ListingQueryDTO())

        assert page["total"] == 1

    def test_prices_are_json_safe_strings(self, service, make_product):
        make_product(price="12.99")
        page = service.list_products_page(ListingQueryDTO())
        assert page["items"][0]["price"] == "12.99"

    def test_search_and_category_produce_distinct_keys(self, service, make_product, category):
        make_product(name="Dev Mug")
        make_product(name="JS T-Shirt", category=None)

        by_category = service.list_products_page(ListingQueryDTO(category=category.id))
        by_search = service.list_products_page(ListingQueryDTO(search="shirt"))

        assert [i["name"] for i in by_category["items"]] == ["Dev Mug"]
        assert [i["name"] for i in by_search["items"]] == ["JS T-Shirt"]


# ===========================================================================
# Commands
# ===========================================================================


class TestCreateUpdate:
    def test_create_invalidates_listings(self, service, invalidator, category):
        product = service.create_product(
            CreateProductDTO(
                name="Clean Code",
                price=Decimal("29.99"),
                stock_quantity=40,
                category_id=category.id,
            )
        )

        assert Product.objects.filter(id=product.id).exists()
        invalidator.invalidate_after_catalog_change.assert_called_once()

    def test_create_with_unknown_category(self, service, invalidator):
        with pytest.raises(CategoryNotFound):
            service.create_product(
                CreateProductDTO(name="Orphan", price=Decimal("1.00"), category_id=uuid4())
            )
        invalidator.invalidate_after_catalog_change.assert_not_called()

    def test_price_change(self, service, invalidator, make_product):
        product = make_product(price="12.99")

        updated = service.update_product(
            str(product.id), UpdateProductDTO(price=Decimal("14.99"))
        )

        assert updated.price == Decimal("14.99")
        assert updated.name == product.name
        invalidator.invalidate_after_catalog_change.assert_called_once()

    def test_update_missing_product(self, service):
        with pytest.raises(ProductNotFound):
            service.update_product(str(uuid4()), UpdateProductDTO(name="Nope"))


class TestStock:
    def test_restock_adds_units(self, service, invalidator, make_product):
        product = make_product(stock=2)

        result = service.restock(str(product.id), 5)

        assert result.stock_quantity == 7
        invalidator.invalidate_after_catalog_change.assert_called_once()

    @pytest.mark.parametrize("quantity", [0, -4])
    def test_restock_requires_positive_quantity(self, service, make_product, quantity):
        with pytest.raises(InvalidStockAdjustment):
            service.restock(str(make_product().id), quantity)

    def test_restock_missing_product(self, service, invalidator):
        with pytest.raises(ProductNotFound):
            service.restock(str(uuid4()), 1)
        invalidator.invalidate_after_catalog_change.assert_not_called()

    def test_adjust_sets_absolute_value(self, service, make_product):
        product = make_product(stock=50)

        service.adjust_stock(str(product.id), 0)

        product.refresh_from_db()
        assert product.stock_quantity == 0

    def test_adjust_rejects_negative(self, service, make_product):
        with pytest.raises(InvalidStockAdjustment):
            service.adjust_stock(str(make_product().id), -1)
