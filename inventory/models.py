"""Inventory models (single-location, focused).

Tracks stock per stock-keying-unit: a product, optionally narrowed to one of
its variants. ``StockItem`` rows are the only shared counters; reservations
and movements hang off them.
"""

import uuid

from common.choices import MovementType, OwnerKind, ReservationStatus
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class StockItem(TimeStampedModel):
    product = models.ForeignKey("catalog.Product", related_name="stock_items", on_delete=models.CASCADE)
    variant = models.ForeignKey(
        "catalog.ProductVariant", null=True, blank=True, related_name="stock_items", on_delete=models.CASCADE
    )
    on_hand = models.IntegerField(default=0)
    reserved = models.IntegerField(default=0)

    class Meta:
        ordering = ["-updated_at", "id"]
        constraints = [
            models.CheckConstraint(name="stock_on_hand_non_negative", condition=models.Q(on_hand__gte=0)),
            models.CheckConstraint(name="stock_reserved_non_negative", condition=models.Q(reserved__gte=0)),
            models.CheckConstraint(
                name="stock_reserved_le_on_hand",
                condition=models.Q(reserved__lte=models.F("on_hand")),
            ),
            models.UniqueConstraint(
                fields=["product"],
                condition=models.Q(variant__isnull=True),
                name="unique_stockitem_per_product",
            ),
            models.UniqueConstraint(
                fields=["product", "variant"],
                condition=models.Q(variant__isnull=False),
                name="unique_stockitem_per_variant",
            ),
        ]
        indexes = [
            models.Index(fields=["product", "variant"], name="stockitem_product_variant_idx"),
        ]

    @property
    def available(self) -> int:
        return int(self.on_hand) - int(self.reserved)

    def __str__(self) -> str:  # pragma: no cover
        target = f"{self.product_id}/{self.variant_id or '-'}"
        return f"StockItem<{target}> on_hand={self.on_hand} reserved={self.reserved}"


class StockMovement(TimeStampedModel):
    """Journal of ledger mutations.

    ``reference`` carries the idempotency key (the reservation id for
    reserve/release/commit). A key is applied at most once per movement type
    per stock item.
    """

    TYPE_RESERVE = MovementType.RESERVE
    TYPE_RELEASE = MovementType.RELEASE
    TYPE_COMMIT = MovementType.COMMIT
    TYPE_RESTOCK = MovementType.RESTOCK
    TYPE_ADJUST = MovementType.ADJUST
    TYPE_CHOICES = MovementType.choices

    stock_item = models.ForeignKey(StockItem, on_delete=models.CASCADE, related_name="movements")
    movement_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    quantity = models.IntegerField()
    reason = models.CharField(max_length=200, blank=True)
    reference = models.CharField(max_length=120, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.CheckConstraint(name="movement_non_zero", condition=~models.Q(quantity=0)),
            models.UniqueConstraint(
                fields=["stock_item", "movement_type", "reference"],
                condition=~models.Q(reference=""),
                name="unique_movement_reference_per_type",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.movement_type} {self.quantity} for {self.stock_item_id}"


class StockReservation(TimeStampedModel):
    STATUS_PENDING = ReservationStatus.PENDING
    STATUS_COMMITTED = ReservationStatus.COMMITTED
    STATUS_RELEASED = ReservationStatus.RELEASED
    STATUS_EXPIRED = ReservationStatus.EXPIRED
    STATUS_CHOICES = ReservationStatus.choices

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey("catalog.Product", related_name="reservations", on_delete=models.CASCADE)
    variant = models.ForeignKey(
        "catalog.ProductVariant", null=True, blank=True, related_name="reservations", on_delete=models.CASCADE
    )
    quantity = models.IntegerField()
    session_id = models.CharField(max_length=64, null=True, blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        related_name="stock_reservations",
        on_delete=models.CASCADE,
    )
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    expires_at = models.DateTimeField()
    committed_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    order = models.ForeignKey(
        "orders.Order", null=True, blank=True, related_name="reservations", on_delete=models.PROTECT
    )

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.CheckConstraint(name="reservation_positive_qty", condition=models.Q(quantity__gt=0)),
            # Exactly one owner: a guest session or an authenticated user
            models.CheckConstraint(
                name="reservation_single_owner",
                condition=(
                    models.Q(session_id__isnull=False, user__isnull=True)
                    | models.Q(session_id__isnull=True, user__isnull=False)
                ),
            ),
            models.CheckConstraint(
                name="reservation_order_only_when_committed",
                condition=models.Q(order__isnull=True) | models.Q(status=ReservationStatus.COMMITTED),
            ),
        ]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="resv_status_expiry_idx"),
            models.Index(fields=["session_id", "status"], name="resv_session_status_idx"),
            models.Index(fields=["user", "status"], name="resv_user_status_idx"),
            models.Index(fields=["product", "variant"], name="resv_product_variant_idx"),
        ]

    @property
    def owner_kind(self) -> str:
        return OwnerKind.USER if self.user_id is not None else OwnerKind.SESSION

    @property
    def owner_ref(self) -> str:
        return str(self.user_id) if self.user_id is not None else str(self.session_id)

    @property
    def is_pending(self) -> bool:
        return self.status == self.STATUS_PENDING

    def __str__(self) -> str:  # pragma: no cover
        return f"Reservation<{self.product_id}/{self.variant_id or '-'}> qty={self.quantity} status={self.status}"


# EOF
