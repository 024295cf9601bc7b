import datetime as dt

import pytest
from cart.tests.factories import UserFactory
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from django.utils import timezone
from inventory.exceptions import (
    InsufficientStock,
    InvalidOwner,
    InvalidQuantity,
    ReservationNotFound,
    ReservationNotPending,
)
from inventory.models import StockItem, StockReservation
from inventory.owners import Owner
from inventory.selectors import pending_quantity_for
from inventory.services import ReservationLine, ReservationManager
from inventory.store import ReservationStore
from inventory.tests.factories import StockItemFactory
from orders.models import Order


def _stock(product):
    return StockItem.objects.get(product=product, variant__isnull=True)


@pytest.mark.django_db
def test_reserve_commit_release_walkthrough():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5, reserved=0)
    manager = ReservationManager()
    order = Order.objects.create(session_id="sess-a")

    res_a = manager.reserve(product_id=product.id, quantity=3, owner=Owner.for_session("sess-a"))
    assert manager.get_availability(product_id=product.id).available == 2

    with pytest.raises(InsufficientStock) as excinfo:
        manager.reserve(product_id=product.id, quantity=3, owner=Owner.for_session("sess-b"))
    assert excinfo.value.available == 2

    res_b = manager.reserve(product_id=product.id, quantity=2, owner=Owner.for_session("sess-b"))
    assert manager.get_availability(product_id=product.id).available == 0

    committed = manager.commit(res_a.id, order.id)
    assert committed.status == StockReservation.STATUS_COMMITTED
    assert committed.order_id == order.id
    assert committed.committed_at is not None
    item = _stock(product)
    assert (item.on_hand, item.reserved, item.available) == (2, 2, 0)

    assert manager.release(res_b.id) is True
    item.refresh_from_db()
    assert (item.on_hand, item.reserved, item.available) == (2, 0, 2)


@pytest.mark.django_db
def test_reserve_sets_expiry_from_ttl():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    now = timezone.now()
    manager = ReservationManager(clock=lambda: now)

    default = manager.reserve(product_id=product.id, quantity=1, owner=Owner.for_session("s"))
    custom = manager.reserve(
        product_id=product.id, quantity=1, owner=Owner.for_session("s"), ttl=dt.timedelta(minutes=2)
    )

    assert default.expires_at == now + dt.timedelta(minutes=15)
    assert custom.expires_at == now + dt.timedelta(minutes=2)
    assert default.status == StockReservation.STATUS_PENDING


@pytest.mark.django_db
def test_reserve_rejects_bad_input():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    manager = ReservationManager()

    with pytest.raises(InvalidQuantity):
        manager.reserve(product_id=product.id, quantity=0, owner=Owner.for_session("s"))
    with pytest.raises(InvalidOwner):
        manager.reserve(product_id=product.id, quantity=1, owner=Owner())
    assert StockReservation.objects.count() == 0
    assert _stock(product).reserved == 0


@pytest.mark.django_db
def test_failed_reserve_writes_no_reservation():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=1)
    with pytest.raises(InsufficientStock):
        ReservationManager().reserve(product_id=product.id, quantity=2, owner=Owner.for_session("s"))
    assert StockReservation.objects.count() == 0


@pytest.mark.django_db
def test_reserve_for_variant_uses_variant_stock():
    variant = ProductVariantFactory()
    StockItemFactory(product=variant.product, variant=variant, on_hand=2)
    manager = ReservationManager()

    reservation = manager.reserve(
        product_id=variant.product_id, variant_id=variant.id, quantity=2, owner=Owner.for_session("s")
    )

    assert reservation.variant_id == variant.id
    assert manager.get_availability(product_id=variant.product_id, variant_id=variant.id).available == 0
    assert pending_quantity_for(product_id=variant.product_id, variant_id=variant.id) == 2


@pytest.mark.django_db
def test_reserve_many_is_all_or_nothing():
    p1 = ProductFactory()
    p2 = ProductFactory()
    StockItemFactory(product=p1, on_hand=5)
    StockItemFactory(product=p2, on_hand=1)
    manager = ReservationManager()
    owner = Owner.for_session("checkout")

    with pytest.raises(InsufficientStock):
        manager.reserve_many(
            lines=[ReservationLine(product_id=p1.id, quantity=2), ReservationLine(product_id=p2.id, quantity=2)],
            owner=owner,
        )

    assert _stock(p1).reserved == 0
    assert StockReservation.objects.count() == 0

    held = manager.reserve_many(
        lines=[ReservationLine(product_id=p1.id, quantity=2), ReservationLine(product_id=p2.id, quantity=1)],
        owner=owner,
    )
    assert len(held) == 2


@pytest.mark.django_db
def test_release_is_idempotent():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    manager = ReservationManager()
    reservation = manager.reserve(product_id=product.id, quantity=2, owner=Owner.for_session("s"))

    assert manager.release(reservation.id) is True
    assert manager.release(reservation.id) is True

    reservation.refresh_from_db()
    assert reservation.status == StockReservation.STATUS_RELEASED
    assert reservation.released_at is not None
    assert _stock(product).reserved == 0


@pytest.mark.django_db
def test_release_unknown_reservation_raises():
    with pytest.raises(ReservationNotFound):
        ReservationManager().release("5f0c6a5e-2f4b-4c4e-9a51-8a2f3c1d0b7e")


@pytest.mark.django_db
def test_release_after_commit_keeps_commit():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    manager = ReservationManager()
    order = Order.objects.create(session_id="s")
    reservation = manager.reserve(product_id=product.id, quantity=2, owner=Owner.for_session("s"))
    manager.commit(reservation.id, order.id)

    assert manager.release(reservation.id) is True

    reservation.refresh_from_db()
    assert reservation.status == StockReservation.STATUS_COMMITTED
    item = _stock(product)
    assert (item.on_hand, item.reserved) == (3, 0)


@pytest.mark.django_db
def test_commit_happens_once():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    manager = ReservationManager()
    order = Order.objects.create(session_id="s")
    reservation = manager.reserve(product_id=product.id, quantity=2, owner=Owner.for_session("s"))

    manager.commit(reservation.id, order.id)
    with pytest.raises(ReservationNotPending) as excinfo:
        manager.commit(reservation.id, order.id)

    assert excinfo.value.status == StockReservation.STATUS_COMMITTED
    assert _stock(product).on_hand == 3


@pytest.mark.django_db
def test_commit_of_released_or_unknown_reservation_fails():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    manager = ReservationManager()
    order = Order.objects.create(session_id="s")
    reservation = manager.reserve(product_id=product.id, quantity=1, owner=Owner.for_session("s"))
    manager.release(reservation.id)

    with pytest.raises(ReservationNotPending):
        manager.commit(reservation.id, order.id)
    with pytest.raises(ReservationNotFound):
        manager.commit("5f0c6a5e-2f4b-4c4e-9a51-8a2f3c1d0b7e", order.id)
    assert _stock(product).on_hand == 5


@pytest.mark.django_db
def test_expire_only_past_deadline():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    now = timezone.now()
    manager = ReservationManager(clock=lambda: now)
    reservation = manager.reserve(
        product_id=product.id, quantity=2, owner=Owner.for_session("s"), ttl=dt.timedelta(minutes=1)
    )

    assert manager.expire(reservation.id, now=now) is False
    assert manager.expire(reservation.id, now=now + dt.timedelta(minutes=2)) is True
    assert manager.expire(reservation.id, now=now + dt.timedelta(minutes=3)) is False

    reservation.refresh_from_db()
    assert reservation.status == StockReservation.STATUS_EXPIRED
    assert _stock(product).reserved == 0


@pytest.mark.django_db
def test_extend_pushes_expiry_and_never_shortens():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    now = timezone.now()
    manager = ReservationManager(clock=lambda: now)
    reservation = manager.reserve(
        product_id=product.id, quantity=1, owner=Owner.for_session("s"), ttl=dt.timedelta(minutes=30)
    )

    shorter = manager.extend(reservation.id, dt.timedelta(minutes=5))
    assert shorter.expires_at == now + dt.timedelta(minutes=30)

    longer = manager.extend(reservation.id, dt.timedelta(minutes=45))
    assert longer.expires_at == now + dt.timedelta(minutes=45)

    capped = manager.extend(reservation.id, dt.timedelta(days=1))
    assert capped.expires_at == now + dt.timedelta(minutes=120)


@pytest.mark.django_db
def test_extend_terminal_reservation_fails():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    manager = ReservationManager()
    reservation = manager.reserve(product_id=product.id, quantity=1, owner=Owner.for_session("s"))
    manager.release(reservation.id)

    with pytest.raises(ReservationNotPending):
        manager.extend(reservation.id)


@pytest.mark.django_db
def test_owner_scoped_helpers():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=10)
    user = UserFactory()
    manager = ReservationManager()
    owner = Owner.for_user(user)
    manager.reserve(product_id=product.id, quantity=2, owner=owner)
    manager.reserve(product_id=product.id, quantity=3, owner=owner)
    manager.reserve(product_id=product.id, quantity=1, owner=Owner.for_session("other"))

    listed = manager.reservations_for_owner(owner=owner)
    assert [row["quantity"] for row in listed] == [2, 3]
    assert not any(row["is_expired"] for row in listed)
    assert manager.extend_for_owner(owner=owner) == 2

    assert manager.release_for_owner(owner=owner) == 2
    assert _stock(product).reserved == 1
    assert manager.reservations_for_owner(owner=owner) == []


@pytest.mark.django_db
def test_commit_for_owner_commits_every_pending_hold():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=10)
    manager = ReservationManager()
    owner = Owner.for_session("buyer")
    order = Order.objects.create(session_id="buyer")
    manager.reserve(product_id=product.id, quantity=2, owner=owner)
    manager.reserve(product_id=product.id, quantity=1, owner=owner)

    committed = manager.commit_for_owner(owner=owner, order_id=order.id)

    assert {r.status for r in committed} == {StockReservation.STATUS_COMMITTED}
    item = _stock(product)
    assert (item.on_hand, item.reserved) == (7, 0)


@pytest.mark.django_db
def test_get_availability_without_stock_item_is_zero():
    product = ProductFactory()
    availability = ReservationManager().get_availability(product_id=product.id)
    assert (availability.on_hand, availability.reserved, availability.available) == (0, 0, 0)


class _SnapshotStore(ReservationStore):
    """Serves reservation rows as they were before a later write landed."""

    def __init__(self, snapshots):
        self.snapshots = snapshots

    def get_by_id(self, reservation_id, *, for_update=False):
        return self.snapshots.get(reservation_id)


@pytest.mark.django_db
def test_expire_does_not_override_an_extend_that_landed_after_the_read():
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)
    now = timezone.now()
    manager = ReservationManager(clock=lambda: now)
    reservation = manager.reserve(
        product_id=product.id, quantity=2, owner=Owner.for_session("s"), ttl=dt.timedelta(minutes=1)
    )
    stale = manager.store.get_by_id(reservation.id)
    manager.extend(reservation.id, dt.timedelta(minutes=60))

    reaper_view = ReservationManager(store=_SnapshotStore({reservation.id: stale}), clock=lambda: now)
    assert reaper_view.expire(reservation.id, now=now + dt.timedelta(minutes=2)) is False

    reservation.refresh_from_db()
    assert reservation.status == StockReservation.STATUS_PENDING
    assert reservation.released_at is None
    assert _stock(product).reserved == 2


@pytest.mark.django_db
@pytest.mark.parametrize("quantity", [1.5, "2", True, -1])
def test_reserve_rejects_non_integer_quantities(quantity):
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=5)

    with pytest.raises(InvalidQuantity):
        ReservationManager().reserve(product_id=product.id, quantity=quantity, owner=Owner.for_session("s"))

    assert StockReservation.objects.count() == 0
    assert _stock(product).reserved == 0
