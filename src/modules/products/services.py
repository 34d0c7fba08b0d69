"""Product service layer (Use Cases).

Orchestrates catalog reads and writes, delegating persistence to the
injected ``IProductRepository`` and cache access to an injected
``IPatternCache``.

Business rules enforced here:
- Listing pages are served from the read cache when present; cache
  errors degrade to a database read, never to a failed request.
- Every committed change to price or stock invalidates all cached
  listing pages (post-commit, best effort).
- Stock never goes negative: restock adds through an atomic increment,
  adjustment sets an absolute value >= 0 under a row lock.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from modules.core.transactions import UnitOfWork
from modules.products.constants import listing_cache_key
from modules.products.dtos import ProductOutputDTO
from modules.products.exceptions import (
    CategoryNotFound,
    InvalidStockAdjustment,
    ProductNotFound,
)
from modules.products.models import Product

if TYPE_CHECKING:
    from modules.core.cache import CacheInvalidationCoordinator, IPatternCache
    from modules.products.dtos import (
        CreateProductDTO,
        ListingQueryDTO,
        UpdateProductDTO,
    )
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for catalog use-cases.

    Receives its repository, listing cache and invalidation coordinator
    via constructor injection (DIP).
    """

    def __init__(
        self,
        repository: IProductRepository,
        cache: IPatternCache,
        invalidator: CacheInvalidationCoordinator,
        listing_ttl: int = 60,
    ) -> None:
        self._repo = repository
        self._cache = cache
        self._invalidator = invalidator
        self._listing_ttl = listing_ttl

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products_page(self, query: ListingQueryDTO) -> Dict[str, Any]:
        """Return one listing page, read-through the listing cache."""
        key = listing_cache_key(query.page, query.limit, query.category, query.search)
        log = logger.bind(cache_key=key)

        cached = self._cache_get(key)
        if cached is not None:
            log.info("product.listing_cache_hit")
            return cached

        log.info("product.listing_cache_miss")
        items, total = self._repo.page(
            offset=query.offset,
            limit=query.limit,
            category=query.category,
            search=query.search,
        )
        result = {
            "items": [
                ProductOutputDTO.from_entity(item).model_dump(mode="json")
                for item in items
            ],
            "page": query.page,
            "limit": query.limit,
            "total": total,
        }
        self._cache_set(key, result)
        return result

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """Return a list of products, optionally filtered (uncached)."""
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a product; new stock is visible in listings immediately.

        Raises:
            CategoryNotFound: if ``category_id`` does not exist.
        """
        with UnitOfWork(name="product.create"):
            if dto.category_id and not self._repo.get_category(dto.category_id):
                raise CategoryNotFound(f"Category {dto.category_id} not found.")
            product = Product(
                name=dto.name,
                price=dto.price,
                description=dto.description,
                stock_quantity=dto.stock_quantity,
                category_id=dto.category_id,
                image_url=dto.image_url,
            )
            product = self._repo.save(product)

        logger.info("product.created", product_id=str(product.id))
        self._invalidator.invalidate_after_catalog_change()
        return product

    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Update display fields and price.

        Existing order lines keep the ``unit_price`` they captured at
        purchase time.

        Raises:
            ProductNotFound: if the product does not exist.
            CategoryNotFound: if ``category_id`` does not exist.
        """
        with UnitOfWork(name="product.update"):
            product = self._repo.get_for_update(id)
            if not product:
                raise ProductNotFound(f"Product {id} not found.")
            if dto.category_id and not self._repo.get_category(dto.category_id):
                raise CategoryNotFound(f"Category {dto.category_id} not found.")

            for field in ("name", "price", "description", "category_id", "image_url"):
                value = getattr(dto, field)
                if value is not None:
                    setattr(product, field, value)
            product = self._repo.save(product)

        logger.info("product.updated", product_id=str(id))
        self._invalidator.invalidate_after_catalog_change()
        return product

    def restock(self, id: str, quantity: int) -> Product:
        """Add ``quantity`` units to a product's stock.

        Raises:
            InvalidStockAdjustment: if ``quantity`` is not positive.
            ProductNotFound: if the product does not exist.
        """
        if quantity < 1:
            raise InvalidStockAdjustment("Restock quantity must be at least 1.")

        with UnitOfWork(name="product.restock"):
            if not self._repo.increment_stock(id, quantity):
                raise ProductNotFound(f"Product {id} not found.")

        logger.info("product.restocked", product_id=str(id), quantity=quantity)
        self._invalidator.invalidate_after_catalog_change()
        return self.get_product(id)

    def adjust_stock(self, id: str, stock_quantity: int) -> Product:
        """Set the stock counter to an absolute value (inventory count).

        Raises:
            InvalidStockAdjustment: if ``stock_quantity`` is negative.
            ProductNotFound: if the product does not exist.
        """
        if stock_quantity < 0:
            raise InvalidStockAdjustment("Stock quantity cannot be negative.")

        with UnitOfWork(name="product.adjust_stock"):
            product = self._repo.get_for_update(id)
            if not product:
                raise ProductNotFound(f"Product {id} not found.")
            previous = product.stock_quantity
            product.stock_quantity = stock_quantity
            product.save(update_fields=["stock_quantity"])

        logger.info(
            "product.stock_adjusted",
            product_id=str(id),
            previous=previous,
            stock_quantity=stock_quantity,
        )
        self._invalidator.invalidate_after_catalog_change()
        return product

    # ------------------------------------------------------------------
    # Cache helpers
    # ------------------------------------------------------------------

    def _cache_get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            return self._cache.get(key)
        except Exception as exc:
            logger.warning(
                "product.listing_cache_read_failed",
                cache_key=key,
                error=str(exc),
            )
            return None

    def _cache_set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            self._cache.set(key, value, timeout=self._listing_ttl)
        except Exception as exc:
            logger.warning(
                "product.listing_cache_write_failed",
                cache_key=key,
                error=str(exc),
            )
