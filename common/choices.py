"""Shared enumerations and choices used across apps."""

from django.db import models


class ActiveInactive(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class MovementType(models.TextChoices):
    RESERVE = "reserve", "Reserve"
    RELEASE = "release", "Release"
    COMMIT = "commit", "Commit"
    RESTOCK = "restock", "Restock"
    ADJUST = "adjust", "Adjust"


class ReservationStatus(models.TextChoices):
    """Lifecycle of a stock hold. Only PENDING is non-terminal."""

    PENDING = "pending", "Pending"
    COMMITTED = "committed", "Committed"
    RELEASED = "released", "Released"
    EXPIRED = "expired", "Expired"


class OwnerKind(models.TextChoices):
    SESSION = "session", "Session"
    USER = "user", "User"


class InventoryStatus(models.TextChoices):
    IN_STOCK = "IN_STOCK", "In stock"
    LOW_STOCK = "LOW_STOCK", "Low stock"
    OUT_OF_STOCK = "OUT_OF_STOCK", "Out of stock"
    BACKORDER = "BACKORDER", "Backorder"
    DISCONTINUED = "DISCONTINUED", "Discontinued"


class CartStatus(models.TextChoices):
    """Statuses for shopping carts."""

    ACTIVE = "active", "Active"
    ORDERED = "ordered", "Ordered"
    ABANDONED = "abandoned", "Abandoned"


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders."""

    PENDING = "pending", "Pending"
    PLACED = "placed", "Placed"
    CANCELLED = "cancelled", "Cancelled"
