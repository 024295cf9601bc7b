"""Catalog app models.

Only the slice of the product catalog the inventory engine reads: products,
their variants, and the product-level stock flags.
"""

from common.choices import ActiveInactive
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Core product entity.

    ``low_stock_threshold`` overrides ``INVENTORY_LOW_STOCK_THRESHOLD`` when set.
    ``is_discontinued`` and ``allows_backorder`` are merchandising flags owned
    by the seller; inventory only reports them.
    """

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    low_stock_threshold = models.PositiveIntegerField(null=True, blank=True)
    is_discontinued = models.BooleanField(default=False)
    allows_backorder = models.BooleanField(default=False)

    class Meta:
        ordering = ["title"]

    def __str__(self) -> str:  # pragma: no cover
        return self.title


class ProductVariant(TimeStampedModel):
    """Variant SKU under a product (e.g., size/color)."""

    STATUS_ACTIVE = ActiveInactive.ACTIVE
    STATUS_INACTIVE = ActiveInactive.INACTIVE
    STATUS_CHOICES = ActiveInactive.choices

    product = models.ForeignKey(Product, related_name="variants", on_delete=models.CASCADE)
    sku = models.CharField(max_length=64, unique=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)

    class Meta:
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(
                name="variant_price_non_negative",
                condition=models.Q(price__gte=0) | models.Q(price__isnull=True),
            ),
        ]
        indexes = [
            models.Index(fields=["product", "status"], name="variant_product_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.title} [{self.sku}]"
