"""Django app configuration for the Catalog app."""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """AppConfig for the catalog domain (products)."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"

    def ready(self):
        # Register signal receivers
        from . import signals  # noqa: F401
