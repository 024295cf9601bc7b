from datetime import timedelta

from cart.bridge import CartReservationBridge
from cart.models import Cart
from django.core.management.base import BaseCommand
from django.utils import timezone


class Command(BaseCommand):
    help = "Abandon stale active carts by TTL, releasing the reservations behind them"

    def handle(self, *args, **options):
        from django.conf import settings

        ttl_minutes = getattr(settings, "CART_ABANDON_TTL_MINUTES", 120)
        cutoff = timezone.now() - timedelta(minutes=int(ttl_minutes))
        bridge = CartReservationBridge()
        count = 0
        released = 0
        for cart in Cart.objects.filter(status=Cart.STATUS_ACTIVE, updated_at__lt=cutoff).iterator():
            released += bridge.abandon_cart(cart)
            count += 1
        self.stdout.write(self.style.SUCCESS(f"Abandoned {count} stale carts, released {released} reservations."))
