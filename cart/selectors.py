"""Selectors for read-only cart queries."""

from .models import Cart, CartItem


def get_active_cart_for_user(*, user) -> Cart:
    """Return the user's active cart, creating it if missing."""

    cart, _ = Cart.objects.get_or_create(user=user, session_id=None, status=Cart.STATUS_ACTIVE)
    return cart


def get_active_cart_for_session(*, session_id: str) -> Cart:
    """Return the guest session's active cart, creating it if missing."""

    cart, _ = Cart.objects.get_or_create(user=None, session_id=session_id, status=Cart.STATUS_ACTIVE)
    return cart


def reservation_ids_for_cart(*, cart: Cart):
    return list(
        CartItem.objects.filter(cart=cart, reservation__isnull=False).values_list("reservation_id", flat=True)
    )
