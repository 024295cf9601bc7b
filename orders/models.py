from common.choices import OrderStatus
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Order(TimeStampedModel):
    """Order record the committed reservations point at.

    Line items, totals and payment live in the order workflow; inventory only
    needs a stable id to tie permanent stock decrements to.
    """

    STATUS_PENDING = OrderStatus.PENDING
    STATUS_PLACED = OrderStatus.PLACED
    STATUS_CANCELLED = OrderStatus.CANCELLED
    STATUS_CHOICES = OrderStatus.choices

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="orders", on_delete=models.SET_NULL
    )
    session_id = models.CharField(max_length=64, null=True, blank=True)
    number = models.CharField(max_length=32, unique=True, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    class Meta:
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["user", "status", "created_at"], name="order_user_status_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order#{self.id} status={self.status}"
