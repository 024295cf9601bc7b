"""Serializers for inventory domain.

Read serializers for stock items and reservations, plus the write payloads
of the reservation endpoints.
"""

from rest_framework import serializers

from .models import StockItem, StockReservation


class StockItemSerializer(serializers.ModelSerializer):
    """Read-only representation of stock for a stock-keying-unit.

    Exposes computed ``available`` and the variant SKU for convenience.
    """

    sku = serializers.CharField(source="variant.sku", read_only=True, default=None)
    available = serializers.IntegerField(read_only=True)

    class Meta:
        model = StockItem
        fields = [
            "id",
            "product",
            "variant",
            "sku",
            "on_hand",
            "reserved",
            "available",
            "updated_at",
        ]
        read_only_fields = fields


class StockReservationSerializer(serializers.ModelSerializer):
    """Read-only representation of stock reservations."""

    owner_kind = serializers.CharField(read_only=True)
    owner_ref = serializers.CharField(read_only=True)

    class Meta:
        model = StockReservation
        fields = [
            "id",
            "product",
            "variant",
            "quantity",
            "owner_kind",
            "owner_ref",
            "status",
            "created_at",
            "expires_at",
            "committed_at",
            "released_at",
            "order",
        ]
        read_only_fields = fields


class ReserveStockSerializer(serializers.Serializer):
    """Payload of reserveStock. ``session_id`` may also come from ``X-Session-Id``."""

    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    variant_id = serializers.IntegerField(required=False, allow_null=True)
    session_id = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True)
    ttl_minutes = serializers.IntegerField(required=False, min_value=1)


class ExtendReservationSerializer(serializers.Serializer):
    ttl_minutes = serializers.IntegerField(required=False, min_value=1)


class StockLevelSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    variant_id = serializers.IntegerField(allow_null=True)
    available_stock = serializers.IntegerField()
    reserved_stock = serializers.IntegerField()
    total_stock = serializers.IntegerField()
    inventory_status = serializers.CharField()


# EOF
