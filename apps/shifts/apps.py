"""Django app configuration for shifts app."""

from django.apps import AppConfig


class ShiftsConfig(AppConfig):
    """Configuration for the shift workflow board."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.shifts"
    verbose_name = "Shift board"
