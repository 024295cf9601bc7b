"""Keeps cart line items and their stock reservations in step.

Every cart item is backed by at most one reservation. Quantity changes never
edit a live reservation in place: the old hold is released and a new one is
reserved in the same transaction, so a failed re-reserve leaves the old hold
untouched.
"""

import logging
from typing import Iterable, Optional

from django.db import transaction
from inventory.owners import Owner
from inventory.services import ReservationManager, validated_quantity

from .models import Cart, CartItem
from .selectors import get_active_cart_for_user, reservation_ids_for_cart

logger = logging.getLogger("stockhold.cart")


def owner_for_cart(cart: Cart) -> Owner:
    if cart.user_id is not None:
        return Owner.for_user(cart.user_id)
    return Owner.for_session(cart.session_id)


class CartReservationBridge:
    def __init__(self, *, manager: Optional[ReservationManager] = None):
        self.manager = manager or ReservationManager()

    def _replace(self, item: CartItem, quantity: int):
        if item.reservation_id:
            self.manager.release(item.reservation_id)
        reservation = self.manager.reserve(
            product_id=item.product_id,
            variant_id=item.variant_id,
            quantity=quantity,
            owner=owner_for_cart(item.cart),
        )
        previous = item.reservation_id
        item.quantity = quantity
        item.reservation = reservation
        item.save(update_fields=["quantity", "reservation", "updated_at"])
        logger.info(
            "cart.reservation_replaced",
            extra={
                "event": "cart.reservation_replaced",
                "cart_id": item.cart_id,
                "item_id": item.id,
                "previous_reservation_id": str(previous) if previous else None,
                "reservation_id": str(reservation.id),
                "quantity": quantity,
            },
        )
        return reservation

    @staticmethod
    def _lock(item: CartItem) -> CartItem:
        return CartItem.objects.select_for_update().select_related("cart").get(id=item.id)

    @transaction.atomic
    def ensure_reservation(self, cart_item: CartItem):
        """Return the id of a pending reservation covering the item's quantity."""
        item = self._lock(cart_item)
        if item.reservation_id:
            current = self.manager.store.get_by_id(item.reservation_id)
            if current is not None and current.is_pending and current.quantity == item.quantity:
                return current.id
        reservation = self._replace(item, item.quantity)
        cart_item.refresh_from_db()
        return reservation.id

    @transaction.atomic
    def adjust_reservation(self, cart_item: CartItem, new_quantity: int):
        """Re-back the item with a hold for ``new_quantity``.

        Reconciles against the reservation the item last pointed at, never
        assumes it has none. ``InsufficientStock`` rolls everything back.
        """
        new_quantity = validated_quantity(new_quantity)
        item = self._lock(cart_item)
        reservation = self._replace(item, new_quantity)
        cart_item.refresh_from_db()
        return reservation

    @transaction.atomic
    def release_reservation(self, cart_item: CartItem) -> bool:
        item = self._lock(cart_item)
        if not item.reservation_id:
            return True
        released = self.manager.release(item.reservation_id)
        item.reservation = None
        item.save(update_fields=["reservation", "updated_at"])
        cart_item.refresh_from_db()
        return released

    @transaction.atomic
    def migrate_ownership(self, reservation_ids: Iterable, from_session_id: str, to_user) -> int:
        """Hand a guest session's pending holds to a signed-in user.

        Quantities do not change, so the stock ledger is not touched.
        """
        reservation_ids = list(reservation_ids)
        moved = self.manager.store.reown(
            reservation_ids, Owner.for_session(from_session_id), Owner.for_user(to_user)
        )
        logger.info(
            "cart.reservations_reowned",
            extra={
                "event": "cart.reservations_reowned",
                "session_id": from_session_id,
                "user_id": getattr(to_user, "id", to_user),
                "requested": len(reservation_ids),
                "moved": moved,
            },
        )
        return moved

    @transaction.atomic
    def adopt_guest_cart(self, cart: Cart, user) -> Cart:
        """Move a guest cart's items and holds into the user's active cart."""
        if cart.user_id is not None:
            return cart
        dest = get_active_cart_for_user(user=user)
        self.migrate_ownership(reservation_ids_for_cart(cart=cart), cart.session_id, user)
        CartItem.objects.filter(cart=cart).update(cart=dest)
        session_id = cart.session_id
        cart.delete()
        logger.info(
            "cart.merged",
            extra={
                "event": "cart.merged",
                "dest_cart_id": dest.id,
                "user_id": getattr(user, "id", None),
                "session_id": session_id,
            },
        )
        return dest

    @transaction.atomic
    def abandon_cart(self, cart: Cart) -> int:
        """Release every hold backing ``cart`` and mark it abandoned. Returns holds released."""
        released = 0
        for item in CartItem.objects.select_for_update().select_related("cart").filter(cart=cart):
            if item.reservation_id:
                self.manager.release(item.reservation_id)
                item.reservation = None
                item.save(update_fields=["reservation", "updated_at"])
                released += 1
        cart.status = Cart.STATUS_ABANDONED
        cart.save(update_fields=["status", "updated_at"])
        logger.info(
            "cart.abandoned",
            extra={"event": "cart.abandoned", "cart_id": cart.id, "released": released},
        )
        return released


# EOF
