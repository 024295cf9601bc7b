"""django-filter filtersets for inventory list endpoints."""

import django_filters

from .models import StockItem, StockReservation


class StockItemFilter(django_filters.FilterSet):
    product_id = django_filters.NumberFilter(field_name="product_id")
    variant_id = django_filters.NumberFilter(field_name="variant_id")
    sku = django_filters.CharFilter(field_name="variant__sku", lookup_expr="iexact")
    updated_after = django_filters.IsoDateTimeFilter(field_name="updated_at", lookup_expr="gte")

    class Meta:
        model = StockItem
        fields = ["product_id", "variant_id", "sku", "updated_after"]


class StockReservationFilter(django_filters.FilterSet):
    product_id = django_filters.NumberFilter(field_name="product_id")
    variant_id = django_filters.NumberFilter(field_name="variant_id")
    status = django_filters.ChoiceFilter(choices=StockReservation.STATUS_CHOICES)
    session_id = django_filters.CharFilter(field_name="session_id")
    expires_before = django_filters.IsoDateTimeFilter(field_name="expires_at", lookup_expr="lte")

    class Meta:
        model = StockReservation
        fields = ["product_id", "variant_id", "status", "session_id", "expires_before"]
