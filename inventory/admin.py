"""Admin registrations for inventory app.

Counters and reservation statuses are read-only here: they may only change
through the stock ledger and the reservation manager.
"""

from django.contrib import admin

from .models import StockItem, StockMovement, StockReservation


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "variant", "on_hand", "reserved", "updated_at")
    search_fields = ("product__title", "variant__sku")
    readonly_fields = ("on_hand", "reserved")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("id", "stock_item", "movement_type", "quantity", "reason", "reference", "created_at")
    list_filter = ("movement_type",)
    search_fields = ("stock_item__variant__sku", "reference")


@admin.register(StockReservation)
class StockReservationAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "variant", "quantity", "status", "session_id", "user", "expires_at", "created_at")
    list_filter = ("status",)
    search_fields = ("variant__sku", "session_id")
    readonly_fields = ("status", "quantity", "committed_at", "released_at", "order")


# EOF
