"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Message moderation
- Presence inspection
"""

from django.contrib import admin

from chat.models import Message, PresenceRecord


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "sender",
        "receiver",
        "message_type",
        "content_preview",
        "is_read",
        "created_at",
    ]
    list_filter = ["message_type", "is_read", "created_at"]
    search_fields = ["content", "sender__email", "receiver__email"]
    readonly_fields = ["created_at", "read_at"]
    raw_id_fields = ["sender", "receiver"]
    ordering = ["-created_at"]

    @admin.display(description="Content Preview")
    def content_preview(self, obj: Message) -> str:
        """Return truncated content for list display."""
        max_length = 50
        if len(obj.content) > max_length:
            return obj.content[:max_length] + "..."
        return obj.content


@admin.register(PresenceRecord)
class PresenceRecordAdmin(admin.ModelAdmin):
    """Admin interface for PresenceRecord model."""

    list_display = ["user", "status", "last_seen", "typing_target", "updated_at"]
    list_filter = ["status"]
    search_fields = ["user__email"]
    readonly_fields = ["created_at", "updated_at", "active_session_ref"]
    raw_id_fields = ["user", "typing_target"]
    ordering = ["-last_seen"]
