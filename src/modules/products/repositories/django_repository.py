"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: methods return ``None``
instead of raising HTTP-level exceptions; the Service Layer decides
how to translate a missing entity into an API response.

Stock changes are expressed as single conditional ``UPDATE`` statements
with ``F()`` expressions, so the sufficiency check and the write happen
atomically inside the database even without an application-side lock.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from modules.products.models import Category, Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: Any) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"category_id": "..."}
            {"name__icontains": "mug"}
        """
        queryset = Product.objects.select_related("category")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def page(
        self,
        offset: int,
        limit: int,
        category: Optional[UUID] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Product], int]:
        queryset = Product.objects.all()
        if category is not None:
            queryset = queryset.filter(category_id=category)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(description__icontains=search)
            )
        total = queryset.count()
        items = list(queryset.order_by("-created_at", "-id")[offset : offset + limit])
        return items, total

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    def get_category(self, id: UUID) -> Optional[Category]:
        try:
            return Category.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    # ------------------------------------------------------------------
    # Inventory store (must run inside transaction.atomic)
    # ------------------------------------------------------------------

    def get_for_update(self, id: UUID) -> Optional[Product]:
        try:
            return Product.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def lock_for_update(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        unique_ids = list(set(ids))
        if not unique_ids:
            return {}
        products = (
            Product.objects.select_for_update()
            .filter(id__in=unique_ids)
            .order_by("id")
        )
        return {product.id: product for product in products}

    def decrement_stock(self, id: UUID, quantity: int) -> int:
        affected = Product.objects.filter(id=id, stock_quantity__gte=quantity).update(
            stock_quantity=F("stock_quantity") - quantity,
            updated_at=timezone.now(),
        )
        logger.debug(
            "product.stock_decrement",
            product_id=str(id),
            quantity=quantity,
            affected=affected,
        )
        return affected

    def increment_stock(self, id: UUID, quantity: int) -> int:
        try:
            affected = Product.objects.filter(id=id).update(
                stock_quantity=F("stock_quantity") + quantity,
                updated_at=timezone.now(),
            )
        except (ValueError, ValidationError):
            return 0
        logger.debug(
            "product.stock_increment",
            product_id=str(id),
            quantity=quantity,
            affected=affected,
        )
        return affected

    def get_stock(self, id: UUID) -> Optional[int]:
        return (
            Product.objects.filter(id=id)
            .values_list("stock_quantity", flat=True)
            .first()
        )
