"""Order repositories package.

``IOrderRepository`` is the port used by the order writer and the order
service; ``OrderDjangoRepository`` is its ORM adapter.
"""

from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.repositories.interfaces import IOrderRepository

__all__ = ["IOrderRepository", "OrderDjangoRepository"]
