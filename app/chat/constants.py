"""
Constants and configuration for the chat module.

This module centralizes:
- Message limits and pagination sizes
- Presence windows (staleness, typing expiry, sweep interval)
- Socket event names and error codes

PRESENCE_CONFIG values can be overridden with the CHAT_PRESENCE setting,
read through presence_setting():

    CHAT_PRESENCE = {"STALE_WINDOW_SECONDS": 600}

Import example:
    from chat.constants import MESSAGE_CONFIG, PRESENCE_CONFIG, ChatEvent
"""

from typing import Final

from django.conf import settings


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = 5000  # Characters

    # Conversation history (page/limit or "before" cursor)
    HISTORY_DEFAULT_LIMIT: Final[int] = 50
    HISTORY_MAX_LIMIT: Final[int] = 100

    # Conversation list (latest message per peer)
    CONVERSATIONS_DEFAULT_LIMIT: Final[int] = 20
    CONVERSATIONS_MAX_LIMIT: Final[int] = 50


# =============================================================================
# Presence Configuration
# =============================================================================


class PRESENCE_CONFIG:
    """Configuration for presence tracking and the sweeper."""

    # A non-offline record whose last_seen is older than this is swept offline
    STALE_WINDOW_SECONDS: Final[int] = 300  # 5 minutes

    # Typing state older than this is cleared by the sweeper
    TYPING_WINDOW_SECONDS: Final[int] = 60

    # Celery beat interval for the sweep task
    SWEEP_INTERVAL_SECONDS: Final[int] = 120  # 2 minutes
    SWEEP_TASK_NAME: Final[str] = "Chat: Sweep Stale Presence"
    SWEEP_TASK_PATH: Final[str] = "chat.tasks.sweep_stale_presence"

    # Online users listing
    ONLINE_DEFAULT_LIMIT: Final[int] = 20
    ONLINE_MAX_LIMIT: Final[int] = 100


def presence_setting(name: str) -> int:
    """Return a PRESENCE_CONFIG value, honouring settings.CHAT_PRESENCE."""
    overrides = getattr(settings, "CHAT_PRESENCE", None) or {}
    return overrides.get(name, getattr(PRESENCE_CONFIG, name))


# =============================================================================
# Socket Events
# =============================================================================


class ChatEvent:
    """Event names pushed to clients."""

    NEW_MESSAGE: Final[str] = "new_message"
    MESSAGES_READ: Final[str] = "messages_read"
    MESSAGE_DELETED: Final[str] = "message_deleted"
    USER_TYPING: Final[str] = "user_typing"
    USER_ONLINE: Final[str] = "user_online"
    USER_OFFLINE: Final[str] = "user_offline"
    USER_STATUS_CHANGED: Final[str] = "user_status_changed"
    CONNECTION_REQUEST_RECEIVED: Final[str] = "connection_request_received"
    CONNECTION_REQUEST_RESPONDED: Final[str] = "connection_request_responded"
    ACK: Final[str] = "ack"


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode:
    """Machine-readable error codes returned by chat and connection services."""

    VALIDATION_ERROR: Final[str] = "VALIDATION_ERROR"
    SELF_TARGET: Final[str] = "SELF_TARGET"
    NOT_FOUND: Final[str] = "NOT_FOUND"
    FORBIDDEN: Final[str] = "FORBIDDEN"
    CONFLICT: Final[str] = "CONFLICT"
