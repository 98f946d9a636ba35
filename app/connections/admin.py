"""
Django admin configuration for connections.
"""

from django.contrib import admin

from connections.models import Connection


@admin.register(Connection)
class ConnectionAdmin(admin.ModelAdmin):
    """Admin interface for Connection model."""

    list_display = ["id", "requester", "receiver", "status", "created_at", "updated_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["requester__email", "receiver__email"]
    raw_id_fields = ["requester", "receiver"]
    readonly_fields = ["created_at", "updated_at"]
    ordering = ["-created_at"]
