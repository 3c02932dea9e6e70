"""Django app configuration for api app."""

from django.apps import AppConfig


class ApiConfig(AppConfig):
    """REST API for the shift board."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.api"
    verbose_name = "API"
