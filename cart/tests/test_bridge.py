import datetime as dt

import pytest
from cart.bridge import CartReservationBridge, owner_for_cart
from cart.models import Cart, CartItem
from cart.tests.factories import CartFactory, CartItemFactory, UserFactory
from catalog.tests.factories import ProductFactory
from django.core.management import call_command
from django.utils import timezone
from inventory.exceptions import InsufficientStock, InvalidQuantity
from inventory.models import StockItem, StockReservation
from inventory.owners import Owner
from inventory.selectors import pending_quantity_for
from inventory.tests.factories import StockItemFactory


@pytest.mark.django_db
def test_ensure_reservation_creates_hold_once():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    item = CartItemFactory(product=product, quantity=2)
    bridge = CartReservationBridge()

    first = bridge.ensure_reservation(item)
    second = bridge.ensure_reservation(item)

    assert first == second == item.reservation_id
    assert StockItem.objects.get(product=product).reserved == 2
    assert StockReservation.objects.get(id=first).session_id == item.cart.session_id


@pytest.mark.django_db
def test_adjust_reservation_replaces_the_hold():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    item = CartItemFactory(product=product, quantity=1)
    bridge = CartReservationBridge()
    old_id = bridge.ensure_reservation(item)

    new = bridge.adjust_reservation(item, 4)

    assert new.id != old_id
    assert item.quantity == 4
    assert StockReservation.objects.get(id=old_id).status == StockReservation.STATUS_RELEASED
    assert StockItem.objects.get(product=product).reserved == 4


@pytest.mark.django_db
def test_failed_adjust_keeps_previous_hold():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=3)
    item = CartItemFactory(product=product, quantity=2)
    bridge = CartReservationBridge()
    old_id = bridge.ensure_reservation(item)

    with pytest.raises(InsufficientStock):
        bridge.adjust_reservation(item, 5)
    with pytest.raises(InvalidQuantity):
        bridge.adjust_reservation(item, 0)

    item.refresh_from_db()
    assert item.reservation_id == old_id
    assert item.quantity == 2
    assert StockReservation.objects.get(id=old_id).status == StockReservation.STATUS_PENDING
    assert StockItem.objects.get(product=product).reserved == 2


@pytest.mark.django_db
def test_release_reservation_detaches_item():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    item = CartItemFactory(product=product, quantity=2)
    bridge = CartReservationBridge()
    reservation_id = bridge.ensure_reservation(item)

    assert bridge.release_reservation(item) is True
    assert bridge.release_reservation(item) is True

    assert item.reservation_id is None
    assert StockReservation.objects.get(id=reservation_id).status == StockReservation.STATUS_RELEASED
    assert StockItem.objects.get(product=product).reserved == 0


@pytest.mark.django_db
def test_migrate_ownership_keeps_totals():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=10)
    user = UserFactory()
    guest = CartFactory(session_id="guest-xyz")
    bridge = CartReservationBridge()
    ids = [bridge.ensure_reservation(CartItemFactory(cart=guest, product=product, quantity=q)) for q in (1, 3)]
    before = StockItem.objects.get(product=product).reserved

    moved = bridge.migrate_ownership(ids, "guest-xyz", user)

    assert moved == 2
    assert StockItem.objects.get(product=product).reserved == before == 4
    assert pending_quantity_for(product_id=product.id) == 4
    for reservation in StockReservation.objects.filter(id__in=ids):
        assert reservation.user_id == user.id
        assert reservation.session_id is None
    assert bridge.migrate_ownership(ids, "guest-xyz", user) == 0


@pytest.mark.django_db
def test_adopt_guest_cart_moves_items_and_holds():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=10)
    user = UserFactory()
    guest = CartFactory(session_id="guest-merge")
    bridge = CartReservationBridge()
    item = CartItemFactory(cart=guest, product=product, quantity=2)
    reservation_id = bridge.ensure_reservation(item)

    dest = bridge.adopt_guest_cart(guest, user)

    assert dest.user_id == user.id
    assert not Cart.objects.filter(id=guest.id).exists()
    assert list(CartItem.objects.filter(cart=dest).values_list("reservation_id", flat=True)) == [reservation_id]
    assert StockReservation.objects.get(id=reservation_id).user_id == user.id
    assert owner_for_cart(dest) == Owner.for_user(user)


@pytest.mark.django_db
def test_abandon_cart_releases_every_hold():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=10)
    cart = CartFactory()
    bridge = CartReservationBridge()
    for quantity in (1, 2):
        bridge.ensure_reservation(CartItemFactory(cart=cart, product=product, quantity=quantity))

    assert bridge.abandon_cart(cart) == 2

    cart.refresh_from_db()
    assert cart.status == Cart.STATUS_ABANDONED
    assert StockItem.objects.get(product=product).reserved == 0


@pytest.mark.django_db
def test_abandon_stale_carts_command():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=10)
    stale = CartFactory()
    fresh = CartFactory()
    bridge = CartReservationBridge()
    bridge.ensure_reservation(CartItemFactory(cart=stale, product=product, quantity=2))
    bridge.ensure_reservation(CartItemFactory(cart=fresh, product=product, quantity=1))
    Cart.objects.filter(id=stale.id).update(updated_at=timezone.now() - dt.timedelta(days=1))

    call_command("abandon_stale_carts")

    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert stale.status == Cart.STATUS_ABANDONED
    assert fresh.status == Cart.STATUS_ACTIVE
    assert StockItem.objects.get(product=product).reserved == 1


@pytest.mark.django_db
def test_adjust_reservation_rejects_fractional_quantity():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    item = CartItemFactory(product=product, quantity=1)
    bridge = CartReservationBridge()
    reservation_id = bridge.ensure_reservation(item)

    with pytest.raises(InvalidQuantity):
        bridge.adjust_reservation(item, 2.5)

    item.refresh_from_db()
    assert item.reservation_id == reservation_id
    assert StockItem.objects.get(product=product).reserved == 1
