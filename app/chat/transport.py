"""
Outbound event transport over the Channels layer.

Services call the transport from synchronous code (DRF views, or consumer
handlers wrapped in database_sync_to_async), so each emit goes through
``async_to_sync(channel_layer.group_send)``.

Every event is delivered to consumers as a ``chat.event`` message:

    {
        "type": "chat.event",
        "event": "new_message",
        "data": {...},             # JSON-safe payload sent to the client
        "exclude_channel": None,   # skip this one session
        "exclude_user": None,      # skip every session of this user
    }

ChatConsumer.chat_event applies the exclusions and forwards
``{"event", "data"}`` to the client.

Delivery is best effort. Group send failures are raised as TransportError;
services catch it, log it and keep the persisted result.
"""

from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from chat.rooms import PRESENCE_GROUP, personal_channel
from core.exceptions import TransportError

logger = logging.getLogger(__name__)

EVENT_MESSAGE_TYPE = "chat.event"


class ChannelLayerTransport:
    """
    Emit-to-room, emit-to-user and broadcast over a channel layer.

    Args:
        channel_layer: Layer to use (defaults to the configured default layer)

    Usage:
        transport = ChannelLayerTransport()
        transport.emit_to_room("3_7", "new_message", payload)
        transport.emit_to_user(7, "messages_read", payload)
        transport.broadcast("user_online", payload, exclude_channel=channel_name)
    """

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def emit_to_room(
        self,
        room: str,
        event: str,
        data: dict,
        exclude_channel: str | None = None,
        exclude_user=None,
    ) -> None:
        """Send an event to every session that joined ``room``."""
        self._group_send(room, event, data, exclude_channel, exclude_user)

    def emit_to_user(self, user_id, event: str, data: dict) -> None:
        """Send an event to every session of ``user_id``."""
        self._group_send(personal_channel(user_id), event, data, None, None)

    def broadcast(
        self,
        event: str,
        data: dict,
        exclude_channel: str | None = None,
        exclude_user=None,
    ) -> None:
        """Send an event to every connected session."""
        self._group_send(PRESENCE_GROUP, event, data, exclude_channel, exclude_user)

    def _group_send(self, group, event, data, exclude_channel, exclude_user) -> None:
        layer = self.channel_layer
        if layer is None:
            raise TransportError(
                "No channel layer configured",
                details={"group": group, "event": event},
            )

        message = {
            "type": EVENT_MESSAGE_TYPE,
            "event": event,
            "data": data,
            "exclude_channel": exclude_channel,
            "exclude_user": str(exclude_user) if exclude_user is not None else None,
        }
        try:
            async_to_sync(layer.group_send)(group, message)
        except Exception as e:
            raise TransportError(
                f"Failed to emit {event} to {group}",
                details={"group": group, "event": event, "original_error": str(e)},
            ) from e


def get_transport() -> ChannelLayerTransport:
    """Return a transport bound to the default channel layer."""
    return ChannelLayerTransport()


def publish(transport, method: str, *args, **kwargs) -> bool:
    """
    Call ``transport.<method>(*args, **kwargs)`` and swallow TransportError.

    Returns:
        True if the event was handed to the channel layer

    Example:
        publish(transport, "emit_to_user", receiver.id, "new_message", payload)
    """
    try:
        getattr(transport, method)(*args, **kwargs)
    except TransportError as e:
        logger.warning(f"Event delivery failed: {e}", extra={"details": e.details})
        return False
    return True
