from django.urls import path

from .views import (
    InventoryHealthView,
    LowStockListView,
    ReservationExtendView,
    ReservationListCreateView,
    ReservationReleaseView,
    StockItemListView,
    StockLevelView,
)

urlpatterns = [
    path("health/", InventoryHealthView.as_view(), name="inventory-health"),
    path("stock-items/", StockItemListView.as_view(), name="stock-item-list"),
    path("low-stock/", LowStockListView.as_view(), name="low-stock-list"),
    path("products/<int:product_id>/", StockLevelView.as_view(), name="stock-level"),
    # Reservations
    path("reservations/", ReservationListCreateView.as_view(), name="reservation-list"),
    path(
        "reservations/<uuid:reservation_id>/release/",
        ReservationReleaseView.as_view(),
        name="reservation-release",
    ),
    path(
        "reservations/<uuid:reservation_id>/extend/",
        ReservationExtendView.as_view(),
        name="reservation-extend",
    ),
]

# EOF
