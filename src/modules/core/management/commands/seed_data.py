from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.orders.exceptions import OrderPlacementError
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Category, Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.wiring import build_listing_invalidator

CATALOG = [
    (
        "Dev Mug",
        "Ceramic mug for developers",
        Decimal("12.99"),
        50,
        "Mugs",
        "https://picsum.photos/seed/mug/400/300",
    ),
    (
        "JS T-Shirt",
        "JavaScript tee",
        Decimal("19.99"),
        100,
        "Shirts",
        "https://picsum.photos/seed/shirt/400/300",
    ),
    (
        "Clean Code",
        "Book by Robert C. Martin",
        Decimal("29.99"),
        40,
        "Books",
        "https://picsum.photos/seed/book/400/300",
    ),
]


class Command(BaseCommand):
    help = "Seed database with development users, catalog and orders."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=5,
            help="Number of sample orders to place for the demo customer.",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        products = self._seed_catalog()
        orders_created = self._seed_orders(products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="customer").exists():
            User.objects.create_user(
                "customer", email="customer@example.com", password="customer123"
            )
            created += 1
        return created

    def _seed_catalog(self) -> list[Product]:
        self.stdout.write("Creating catalog...")
        products: list[Product] = []
        for name, description, price, stock, category_name, image_url in CATALOG:
            category, _ = Category.objects.get_or_create(name=category_name)
            product, _ = Product.objects.get_or_create(
                name=name,
                defaults={
                    "description": description,
                    "price": price,
                    "stock_quantity": stock,
                    "category": category,
                    "image_url": image_url,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating catalog... Done!"))
        return products

    def _seed_orders(self, products: list[Product], count: int) -> int:
        """Place sample orders through the regular placement path."""
        self.stdout.write("Placing orders...")
        customer = get_user_model().objects.get(username="customer")
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            invalidator=build_listing_invalidator(),
        )

        placed = 0
        for _ in range(count):
            lines = [
                {"product_id": product.id, "quantity": random.randint(1, 3)}
                for product in random.sample(products, k=random.randint(1, len(products)))
            ]
            try:
                service.place_order(
                    user_id=customer.id,
                    shipping_address="221B Baker Street, London",
                    cart_lines=lines,
                )
            except OrderPlacementError as exc:
                self.stdout.write(self.style.WARNING(f"Skipped order: {exc.message}"))
                continue
            placed += 1

        self.stdout.write(self.style.SUCCESS("Placing orders... Done!"))
        return placed
