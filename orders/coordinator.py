"""Turns a cart's stock holds into permanent stock decrements at order time.

A commit is a real stock movement, so this module never undoes one. When a
commit fails, the exception propagates and whoever owns the surrounding
transaction (``place_order`` here, or the caller's own order workflow)
decides what happens to the order.
"""

import logging
from typing import List, Optional

from cart.models import Cart, CartItem
from django.db import transaction
from inventory.exceptions import ReservationNotFound
from inventory.models import StockReservation
from inventory.services import ReservationManager

from .models import Order

logger = logging.getLogger("stockhold.orders")


class OrderCommitCoordinator:
    def __init__(self, *, manager: Optional[ReservationManager] = None):
        self.manager = manager or ReservationManager()

    def commit_cart(self, cart: Cart, order: Order) -> List[StockReservation]:
        """Commit the reservation behind every item of ``cart`` to ``order``."""
        committed = []
        items = CartItem.objects.select_for_update().filter(cart=cart).order_by("id")
        for item in items:
            if not item.reservation_id:
                raise ReservationNotFound(message=f"Cart item {item.id} has no reservation")
            committed.append(self.manager.commit(item.reservation_id, order.id))
        return committed

    @transaction.atomic
    def place_order(self, cart: Cart) -> Order:
        """Create the order and commit its holds in one transaction.

        Any failure (e.g. a hold the reaper expired seconds before checkout)
        rolls back the order together with every commit made so far.
        """
        order = Order.objects.create(user_id=cart.user_id, session_id=cart.session_id)
        order.number = f"ORD-{int(order.id):06d}"
        order.save(update_fields=["number"])
        try:
            committed = self.commit_cart(cart, order)
        except Exception:
            logger.warning(
                "order.commit_failed",
                extra={"event": "order.commit_failed", "cart_id": cart.id, "order_number": order.number},
            )
            raise
        order.status = Order.STATUS_PLACED
        order.save(update_fields=["status", "updated_at"])
        cart.status = Cart.STATUS_ORDERED
        cart.save(update_fields=["status", "updated_at"])
        logger.info(
            "order.placed",
            extra={
                "event": "order.placed",
                "order_id": order.id,
                "cart_id": cart.id,
                "reservations": len(committed),
            },
        )
        return order

    @transaction.atomic
    def abort_checkout(self, cart: Cart) -> int:
        """Release the pending holds of a cart whose payment or order creation failed."""
        released = 0
        for item in CartItem.objects.select_for_update().filter(cart=cart, reservation__isnull=False):
            reservation = self.manager.store.get_by_id(item.reservation_id)
            if reservation is not None and reservation.is_pending:
                self.manager.release(reservation.id)
                released += 1
        logger.info(
            "order.checkout_aborted",
            extra={"event": "order.checkout_aborted", "cart_id": cart.id, "released": released},
        )
        return released


# EOF
