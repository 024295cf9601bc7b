"""Cart app models.

A cart belongs to an authenticated user or to a guest session. Each line
item may point at the stock reservation backing it; that back-reference is
the only place carts and inventory meet.
"""

from common.choices import CartStatus
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Cart(TimeStampedModel):
    STATUS_ACTIVE = CartStatus.ACTIVE
    STATUS_ORDERED = CartStatus.ORDERED
    STATUS_ABANDONED = CartStatus.ABANDONED
    STATUS_CHOICES = CartStatus.choices

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="carts", on_delete=models.CASCADE
    )
    session_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.CheckConstraint(
                name="cart_single_owner",
                condition=(
                    models.Q(session_id__isnull=False, user__isnull=True)
                    | models.Q(session_id__isnull=True, user__isnull=False)
                ),
            ),
        ]
        indexes = [
            models.Index(fields=["user", "status"], name="cart_user_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Cart#{self.id} ({self.user_id or self.session_id})"


class CartItem(TimeStampedModel):
    """Line item in a shopping cart for a product or one of its variants."""

    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="cart_items", on_delete=models.CASCADE)
    variant = models.ForeignKey(
        "catalog.ProductVariant", null=True, blank=True, related_name="cart_items", on_delete=models.CASCADE
    )
    quantity = models.PositiveIntegerField(default=1)
    reservation = models.OneToOneField(
        "inventory.StockReservation",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="cart_item",
    )

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(name="quantity_positive", condition=models.Q(quantity__gte=1)),
        ]
        indexes = [
            models.Index(fields=["cart", "product", "variant"], name="cartitem_cart_product_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartItem#{self.id} cart={self.cart_id} product={self.product_id} qty={self.quantity}"
