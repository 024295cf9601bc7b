"""Inventory endpoints: reservations, stock levels and read-only lists."""

from datetime import timedelta

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import generics, status
from rest_framework import serializers as rf_serializers
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import (
    InsufficientStock,
    InvalidOwner,
    InvalidQuantity,
    ReservationNotFound,
    ReservationNotPending,
)
from .filters import StockItemFilter, StockReservationFilter
from .models import StockItem, StockReservation
from .owners import Owner
from .selectors import get_stock_level, list_low_stock_items
from .serializers import (
    ExtendReservationSerializer,
    ReserveStockSerializer,
    StockItemSerializer,
    StockLevelSerializer,
    StockReservationSerializer,
)
from .services import ReservationManager

SESSION_HEADER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Guest session identifier (optional if provided in body or authenticated)",
    type=str,
)

ErrorResponse = inline_serializer(name="InventoryError", fields={"detail": rf_serializers.CharField()})
InsufficientStockResponse = inline_serializer(
    name="InsufficientStockError",
    fields={
        "detail": rf_serializers.CharField(),
        "code": rf_serializers.CharField(),
        "available": rf_serializers.IntegerField(),
    },
)


def _error_response(exc):
    if isinstance(exc, InsufficientStock):
        return Response(
            {"detail": str(exc), "code": exc.code, "available": exc.available},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, ReservationNotPending):
        return Response(
            {"detail": "Reservation is no longer active.", "code": exc.code, "status": exc.status},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, ReservationNotFound):
        return Response({"detail": "Not found.", "code": exc.code}, status=status.HTTP_404_NOT_FOUND)
    return Response({"detail": str(exc), "code": exc.code}, status=status.HTTP_400_BAD_REQUEST)


def _session_id(request, data=None):
    session_id = (data or {}).get("session_id") or request.headers.get("X-Session-Id")
    return session_id or None


def _owner_for_request(request, data=None) -> Owner:
    session_id = _session_id(request, data)
    if session_id:
        return Owner.for_session(session_id)
    if getattr(request.user, "is_authenticated", False):
        return Owner.for_user(request.user)
    raise InvalidOwner("Provide a session id or authenticate")


def _owned_by_requester(request, reservation: StockReservation) -> bool:
    if reservation.user_id is not None:
        return getattr(request.user, "is_authenticated", False) and request.user.id == reservation.user_id
    return bool(reservation.session_id) and _session_id(request, request.data) == reservation.session_id


class InventoryHealthView(APIView):
    throttle_classes = []

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Inventory health",
        description="Simple healthcheck endpoint for the inventory app",
        examples=[OpenApiExample("Health OK", value={"status": "ok", "app": "inventory"})],
    )
    def get(self, request):
        return Response({"status": "ok", "app": "inventory"})


class ReservationListCreateView(generics.ListAPIView):
    """List reservations (staff) and create a reservation (shoppers)."""

    serializer_class = StockReservationSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = StockReservationFilter
    throttle_scope = "inventory_write"

    def get_permissions(self):
        if self.request.method == "POST":
            return [AllowAny()]
        return [IsAdminUser()]

    def get_queryset(self):
        return StockReservation.objects.select_related("product", "variant").order_by("-created_at", "id")

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock reservations",
        description=(
            "List reservations. Filters: product_id, variant_id, status (pending/committed/released/expired), "
            "session_id, expires_before (ISO)."
        ),
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Reserve stock",
        description=(
            "Places a temporary hold on stock for a guest session or the authenticated user. "
            "Fails with 409 and the live available count when stock is insufficient."
        ),
        request=ReserveStockSerializer,
        parameters=[SESSION_HEADER],
        responses={
            201: StockReservationSerializer,
            400: ErrorResponse,
            409: InsufficientStockResponse,
        },
        examples=[
            OpenApiExample("Reserve", value={"product_id": 1, "variant_id": 10, "quantity": 2}, request_only=True),
            OpenApiExample(
                "Insufficient",
                value={"detail": "Requested 3, only 2 available", "code": "insufficient_stock", "available": 2},
                response_only=True,
                status_codes=["409"],
            ),
        ],
    )
    def post(self, request):
        serializer = ReserveStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        ttl_minutes = data.get("ttl_minutes")
        try:
            reservation = ReservationManager().reserve(
                product_id=data["product_id"],
                variant_id=data.get("variant_id"),
                quantity=data["quantity"],
                owner=_owner_for_request(request, data),
                ttl=timedelta(minutes=ttl_minutes) if ttl_minutes else None,
            )
        except (InsufficientStock, InvalidOwner, InvalidQuantity) as exc:
            return _error_response(exc)
        return Response(StockReservationSerializer(reservation).data, status=status.HTTP_201_CREATED)


class ReservationReleaseView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Release reservation",
        description="Releases a pending hold. Releasing an already finished reservation succeeds as a no-op.",
        parameters=[SESSION_HEADER],
        request=None,
        responses={
            200: inline_serializer(name="ReservationReleased", fields={"released": rf_serializers.BooleanField()}),
            404: ErrorResponse,
        },
        examples=[OpenApiExample("Released", value={"released": True})],
    )
    def post(self, request, reservation_id):
        manager = ReservationManager()
        reservation = manager.store.get_by_id(reservation_id)
        if reservation is None or not _owned_by_requester(request, reservation):
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        try:
            released = manager.release(reservation.id)
        except ReservationNotFound as exc:
            return _error_response(exc)
        return Response({"released": released}, status=status.HTTP_200_OK)


class ReservationExtendView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Extend reservation",
        description="Pushes the expiry of a pending hold forward, e.g. while the shopper fills in payment details.",
        parameters=[SESSION_HEADER],
        request=ExtendReservationSerializer,
        responses={200: StockReservationSerializer, 404: ErrorResponse, 409: ErrorResponse},
    )
    def post(self, request, reservation_id):
        serializer = ExtendReservationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        manager = ReservationManager()
        reservation = manager.store.get_by_id(reservation_id)
        if reservation is None or not _owned_by_requester(request, reservation):
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        ttl_minutes = serializer.validated_data.get("ttl_minutes")
        try:
            reservation = manager.extend(reservation.id, timedelta(minutes=ttl_minutes) if ttl_minutes else None)
        except (ReservationNotFound, ReservationNotPending) as exc:
            return _error_response(exc)
        return Response(StockReservationSerializer(reservation).data, status=status.HTTP_200_OK)


class StockLevelView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Get inventory for a product",
        description="Stock snapshot (advisory) for a product, or one of its variants via ?variant_id=.",
        parameters=[OpenApiParameter(name="variant_id", type=int, required=False)],
        responses={200: StockLevelSerializer, 404: ErrorResponse},
        examples=[
            OpenApiExample(
                "Stock level",
                value={
                    "product_id": 1,
                    "variant_id": None,
                    "available_stock": 3,
                    "reserved_stock": 2,
                    "total_stock": 5,
                    "inventory_status": "LOW_STOCK",
                },
            )
        ],
    )
    def get(self, request, product_id: int):
        variant_id = request.query_params.get("variant_id")
        try:
            variant_id = int(variant_id) if variant_id else None
        except ValueError:
            return Response({"detail": "variant_id must be an integer."}, status=status.HTTP_400_BAD_REQUEST)
        level = get_stock_level(product_id=product_id, variant_id=variant_id)
        if level is None:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(StockLevelSerializer(level).data, status=status.HTTP_200_OK)


class StockItemListView(generics.ListAPIView):
    throttle_classes = []
    serializer_class = StockItemSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = StockItemFilter

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock items",
        description="List current stock per product/variant. Filters: product_id, variant_id, sku, updated_after (ISO).",
        examples=[
            OpenApiExample(
                "Stock Items",
                value={
                    "results": [
                        {
                            "id": 1,
                            "product": 3,
                            "variant": 10,
                            "sku": "SKU-0001",
                            "on_hand": 5,
                            "reserved": 2,
                            "available": 3,
                            "updated_at": "2025-01-01T12:00:00Z",
                        }
                    ]
                },
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return StockItem.objects.select_related("variant").order_by("-updated_at", "id")


class LowStockListView(APIView):
    permission_classes = [IsAdminUser]
    throttle_classes = []

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List low stock items",
        description="Stock items whose available count is below their product's threshold (or ?threshold=).",
        parameters=[OpenApiParameter(name="threshold", type=int, required=False)],
    )
    def get(self, request):
        threshold = request.query_params.get("threshold")
        try:
            threshold = int(threshold) if threshold else None
        except ValueError:
            return Response({"detail": "threshold must be an integer."}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"results": list_low_stock_items(threshold=threshold)})


# EOF
