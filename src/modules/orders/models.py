"""Order and OrderItem models.

An order is written once, in status ``pending``, by the order writer in
the same transaction as the stock reservation.  Its ``total_amount`` is
the sum of the line subtotals, and every line carries the unit price
read under lock at purchase time.

Later status changes follow ``VALID_TRANSITIONS`` and are checked at the
service layer.  The user FK is PROTECT so purchase history survives.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import IntegrityError, models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)

logger = structlog.get_logger(__name__)


class Order(BaseModel):
    """Order header.

    ``order_number`` (``ORD-YYYYMMDD-XXXXXX``) is for humans; the UUIDv7
    ``id`` is used for lookups and foreign keys.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    total_amount = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        default=Decimal("0.00"),
    )
    shipping_address = models.TextField()

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["user", "-created_at"], name="orders_user_created_idx"),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    @classmethod
    def next_order_number(cls) -> str:
        """Pick an unused ``ORD-YYYYMMDD-XXXXXX`` number.

        Raises:
            IntegrityError: no free number after ``ORDER_NUMBER_MAX_RETRIES``.
        """
        day = timezone.now().strftime("%Y%m%d")
        for _ in range(ORDER_NUMBER_MAX_RETRIES):
            candidate = f"ORD-{day}-{secrets.token_hex(3).upper()}"
            if not cls.objects.filter(order_number=candidate).exists():
                return candidate
            logger.warning("order.number_collision", order_number=candidate)
        raise IntegrityError(
            f"No unique order number after {ORDER_NUMBER_MAX_RETRIES} attempts."
        )

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            self.order_number = self.next_order_number()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """One purchased line: product, quantity and the captured unit price.

    ``subtotal`` is derived (``quantity * unit_price``) on every save; a
    later catalog price change never touches ``unit_price``.
    """

    order = models.ForeignKey(
        "orders.Order", on_delete=models.CASCADE, related_name="items"
    )
    product = models.ForeignKey(
        "products.Product", on_delete=models.PROTECT, related_name="order_items"
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS, decimal_places=MONEY_DECIMAL_PLACES
    )
    subtotal = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.unit_price is None:
            raise ValidationError({"unit_price": "A captured unit price is required."})
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} @ {self.unit_price}"
