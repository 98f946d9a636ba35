"""
Connections application configuration.
"""

from django.apps import AppConfig


class ConnectionsConfig(AppConfig):
    """Configuration for the connections application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "connections"
    verbose_name = "Connections"
