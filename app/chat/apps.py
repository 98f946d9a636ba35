"""
Chat application configuration.

This app provides:
- Direct (1:1) messages between connected users
- Read receipts and typing indicators
- Presence tracking with a periodic sweeper
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
