"""Selectors for inventory domain (single-location)."""

from dataclasses import dataclass
from typing import Optional

from catalog.models import Product
from common.choices import InventoryStatus
from django.conf import settings
from django.db.models import Sum

from .models import StockItem, StockReservation


@dataclass(frozen=True)
class StockLevel:
    product_id: int
    variant_id: Optional[int]
    available_stock: int
    reserved_stock: int
    total_stock: int
    inventory_status: str


def low_stock_threshold_for(product: Product) -> int:
    if product.low_stock_threshold is not None:
        return int(product.low_stock_threshold)
    return int(getattr(settings, "INVENTORY_LOW_STOCK_THRESHOLD", 10))


def inventory_status_for(*, available: int, product: Product) -> str:
    if product.is_discontinued:
        return InventoryStatus.DISCONTINUED
    if available <= 0:
        return InventoryStatus.BACKORDER if product.allows_backorder else InventoryStatus.OUT_OF_STOCK
    if available < low_stock_threshold_for(product):
        return InventoryStatus.LOW_STOCK
    return InventoryStatus.IN_STOCK


def get_stock_level(*, product_id: int, variant_id: Optional[int] = None) -> Optional[StockLevel]:
    """Stock snapshot for a product (all its stock items) or a single variant.

    Returns None when the product does not exist.
    """
    product = Product.objects.filter(id=product_id).first()
    if product is None:
        return None
    qs = StockItem.objects.filter(product_id=product_id)
    if variant_id is not None:
        qs = qs.filter(variant_id=variant_id)
    agg = qs.aggregate(on_hand=Sum("on_hand"), reserved=Sum("reserved"))
    on_hand = int(agg.get("on_hand") or 0)
    reserved = int(agg.get("reserved") or 0)
    available = max(0, on_hand - reserved)
    return StockLevel(
        product_id=product_id,
        variant_id=variant_id,
        available_stock=available,
        reserved_stock=reserved,
        total_stock=on_hand,
        inventory_status=str(inventory_status_for(available=available, product=product)),
    )


def list_low_stock_items(*, threshold: Optional[int] = None):
    """Stock items whose available count is below ``threshold`` (or their product's own)."""
    rows = []
    for item in StockItem.objects.select_related("product", "variant").order_by("product_id", "variant_id"):
        limit = threshold if threshold is not None else low_stock_threshold_for(item.product)
        if item.available < limit:
            rows.append(
                {
                    "product_id": item.product_id,
                    "variant": item.variant.sku if item.variant else None,
                    "on_hand": item.on_hand,
                    "reserved": item.reserved,
                    "available": item.available,
                }
            )
    return rows


def pending_quantity_for(*, product_id: int, variant_id: Optional[int] = None) -> int:
    """Sum of pending holds for a stock-keying-unit; equals ``StockItem.reserved``."""
    qs = StockReservation.objects.filter(product_id=product_id, status=StockReservation.STATUS_PENDING)
    if variant_id is None:
        qs = qs.filter(variant__isnull=True)
    else:
        qs = qs.filter(variant_id=variant_id)
    return int(qs.aggregate(total=Sum("quantity"))["total"] or 0)


# EOF
