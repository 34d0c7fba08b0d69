"""Product DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource."""

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "stock_quantity",
            "category_id",
            "image_url",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ListingQuerySerializer(serializers.Serializer):
    """Validates listing query-string parameters (clamping happens in the DTO)."""

    page = serializers.IntegerField(required=False)
    limit = serializers.IntegerField(required=False)
    category = serializers.UUIDField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)


class StockChangeSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class StockAdjustmentSerializer(serializers.Serializer):
    stock_quantity = serializers.IntegerField(min_value=0)
