"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.

Order placement error mapping:

=====================  ======
``invalid_input``       400
``product_not_found``   404
``insufficient_stock``  409
``internal_error``      503
=====================  ======
"""

from __future__ import annotations

from uuid import UUID

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.exceptions import (
    InsufficientStock,
    InvalidOrderInput,
    InvalidOrderStatus,
    OrderNotFound,
    OrderPlacementError,
    PersistenceFailure,
    ProductNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.wiring import build_listing_invalidator

PLACEMENT_ERROR_STATUS = {
    InvalidOrderInput: status.HTTP_400_BAD_REQUEST,
    ProductNotFound: status.HTTP_404_NOT_FOUND,
    InsufficientStock: status.HTTP_409_CONFLICT,
    PersistenceFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.

    Customers see only their own orders; staff see all orders and may
    change status or cancel.
    """

    queryset = Order.objects.none()
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._repository = OrderDjangoRepository()
        self._service = OrderService(
            order_repository=self._repository,
            product_repository=ProductDjangoRepository(),
            invalidator=build_listing_invalidator(),
        )

    def get_permissions(self):
        if self.action in {"partial_update", "cancel"}:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def _visible_to(self, request: Request) -> int | None:
        """``None`` for staff (all orders), else the caller's user id."""
        return None if request.user.is_staff else request.user.id

    @staticmethod
    def _parse_order_id(pk: str | None) -> UUID | None:
        try:
            return UUID(str(pk))
        except ValueError:
            return None

    @staticmethod
    def _invalid_order_id() -> Response:
        return Response(
            {"detail": "Invalid order ID format."},
            status=status.HTTP_400_BAD_REQUEST,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Body: ``{"items": [{"product_id", "quantity"}], "shipping_address"}``.
        The order is recorded for the authenticated user.
        """
        create_serializer = CreateOrderSerializer(data=request.data)
        if not create_serializer.is_valid():
            return Response(
                {
                    "code": InvalidOrderInput.code,
                    "detail": "Invalid order input.",
                    "errors": create_serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = create_serializer.validated_data
        try:
            order = self._service.place_order(
                user_id=request.user.id,
                shipping_address=data["shipping_address"],
                cart_lines=[
                    {"product_id": item["product_id"], "quantity": item["quantity"]}
                    for item in data["items"]
                ],
            )
        except OrderPlacementError as exc:
            return Response(
                exc.to_dict(),
                status=PLACEMENT_ERROR_STATUS.get(
                    type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
                ),
            )

        out = OrderSerializer(order)
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        user_id = self._visible_to(self.request)
        return self._repository.queryset(
            {"user_id": user_id} if user_id is not None else None
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, user, date range, total range) is handled
        by ``OrderFilter`` via ``filter_backends``.  Ordering is handled
        by ``OrderingFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk, user_id=self._visible_to(request))
        except OrderNotFound:
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        serializer = OrderSerializer(order)
        return Response(serializer.data)

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Updates order status.  Cancellations are **not** allowed via
        this endpoint; use ``POST /orders/{id}/cancel/`` instead.
        """
        if str(request.data.get("status", "")).lower() == "cancelled":
            return Response(
                {"detail": "Use the /cancel/ endpoint for cancellations."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order_id = self._parse_order_id(pk)
        if order_id is None:
            return self._invalid_order_id()

        try:
            order = self._service.update_status(
                order_id=order_id,
                new_status=serializer.validated_data["status"],
            )
        except OrderNotFound:
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidOrderStatus as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels an order and returns its quantities to stock.
        """
        order_id = self._parse_order_id(pk)
        if order_id is None:
            return self._invalid_order_id()

        try:
            order = self._service.cancel_order(order_id=order_id)
        except OrderNotFound:
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidOrderStatus as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(OrderSerializer(order).data)
