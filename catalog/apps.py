"""Django app configuration for catalog."""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Product collaborator read by the inventory engine."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
