"""Django app configuration for inventory."""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """Stock ledger and reservation engine."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
