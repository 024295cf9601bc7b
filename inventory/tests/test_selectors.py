import pytest
from catalog.tests.factories import ProductFactory
from common.choices import InventoryStatus
from django.test import override_settings
from inventory.selectors import get_stock_level, inventory_status_for, low_stock_threshold_for
from inventory.tests.factories import StockItemFactory


@pytest.mark.django_db
@pytest.mark.parametrize(
    "available,flags,expected",
    [
        (50, {}, InventoryStatus.IN_STOCK),
        (3, {}, InventoryStatus.LOW_STOCK),
        (0, {}, InventoryStatus.OUT_OF_STOCK),
        (0, {"allows_backorder": True}, InventoryStatus.BACKORDER),
        (50, {"is_discontinued": True}, InventoryStatus.DISCONTINUED),
    ],
)
def test_inventory_status(available, flags, expected):
    product = ProductFactory(**flags)
    assert inventory_status_for(available=available, product=product) == expected


@pytest.mark.django_db
def test_threshold_falls_back_to_setting():
    with override_settings(INVENTORY_LOW_STOCK_THRESHOLD=4):
        assert low_stock_threshold_for(ProductFactory()) == 4
    assert low_stock_threshold_for(ProductFactory(low_stock_threshold=2)) == 2


@pytest.mark.django_db
def test_stock_level_aggregates_every_stock_item_of_a_product():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=4, reserved=1)

    level = get_stock_level(product_id=product.id)

    assert (level.total_stock, level.reserved_stock, level.available_stock) == (4, 1, 3)


@pytest.mark.django_db
def test_stock_level_without_stock_items_is_out_of_stock():
    level = get_stock_level(product_id=ProductFactory().id)
    assert level.available_stock == 0
    assert level.inventory_status == InventoryStatus.OUT_OF_STOCK
