"""
Serializers for the chat API and socket events.

Socket payloads use camelCase keys (messageId, senderUsername, ...), the
shape the websocket clients consume. REST responses use DRF's usual
snake_case.

Event payloads:
    MessageEventSerializer: new_message payload and send_message ack data

REST:
    MessageSerializer, MessageCreateSerializer
    ConversationSummarySerializer
    PresenceSerializer, PresenceStatusSerializer, TypingSerializer
"""

from rest_framework import serializers

from authentication.serializers import UserSerializer
from chat.constants import MESSAGE_CONFIG
from chat.models import Message, MessageType, PresenceStatus


# =============================================================================
# Socket event payloads
# =============================================================================


class MessageEventSerializer(serializers.Serializer):
    """
    Payload of a ``new_message`` event.

    Output is JSON-safe (ids and timestamps as strings) so it can travel
    through the Redis channel layer unchanged.
    """

    messageId = serializers.UUIDField(source="id")
    senderId = serializers.IntegerField(source="sender_id")
    senderUsername = serializers.CharField(source="sender.display_name")
    receiverId = serializers.IntegerField(source="receiver_id")
    content = serializers.CharField()
    messageType = serializers.CharField(source="message_type")
    timestamp = serializers.DateTimeField(source="created_at")
    isRead = serializers.BooleanField(source="is_read")


def message_event_payload(message: Message) -> dict:
    return dict(MessageEventSerializer(message).data)


# =============================================================================
# Messages
# =============================================================================


class MessageSerializer(serializers.ModelSerializer):
    """Message as returned by the history and send endpoints."""

    sender_username = serializers.CharField(source="sender.display_name", read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "sender_id",
            "sender_username",
            "receiver_id",
            "content",
            "message_type",
            "is_read",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    """
    Payload for POST /api/v1/chat/messages/.

    Only the shape is checked here. Emptiness, length and the connection
    rule are enforced by MessageService so the socket path applies them too.
    """

    receiver_id = serializers.IntegerField()
    content = serializers.CharField(
        allow_blank=True, trim_whitespace=False, max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH * 2
    )
    message_type = serializers.ChoiceField(
        choices=MessageType.choices, default=MessageType.TEXT
    )


class ConversationPageSerializer(serializers.Serializer):
    """Conversation history page (messages oldest first)."""

    messages = MessageSerializer(many=True)
    total = serializers.IntegerField()
    page = serializers.IntegerField(allow_null=True)
    limit = serializers.IntegerField()
    total_pages = serializers.IntegerField()
    has_more = serializers.BooleanField()


class ConversationSummarySerializer(serializers.Serializer):
    """One entry of the conversation list."""

    partner = UserSerializer()
    last_message = MessageSerializer()
    unread_count = serializers.IntegerField()


class ReadReceiptSerializer(serializers.Serializer):
    updated_count = serializers.IntegerField()
    other_user_id = serializers.IntegerField()
    read_at = serializers.DateTimeField()


# =============================================================================
# Presence
# =============================================================================


class PresenceSerializer(serializers.Serializer):
    """Presence snapshot of a user."""

    user_id = serializers.IntegerField()
    username = serializers.CharField()
    status = serializers.ChoiceField(choices=PresenceStatus.choices)
    last_seen = serializers.DateTimeField(allow_null=True)
    is_typing = serializers.BooleanField()
    typing_to = serializers.IntegerField(allow_null=True)


class OnlineUserSerializer(serializers.Serializer):
    """Row of the online users listing (built from a PresenceRecord)."""

    user_id = serializers.IntegerField()
    username = serializers.CharField(source="user.display_name")
    status = serializers.CharField()
    last_seen = serializers.DateTimeField()


class PresenceStatusSerializer(serializers.Serializer):
    """Payload for PUT /api/v1/chat/presence/."""

    status = serializers.ChoiceField(choices=PresenceStatus.choices)


class TypingSerializer(serializers.Serializer):
    """Payload for PUT /api/v1/chat/presence/typing/ (camelCase, like the socket)."""

    isTyping = serializers.BooleanField()
    otherUserId = serializers.IntegerField()


class TypingResultSerializer(serializers.Serializer):
    room_name = serializers.CharField()
    delivered = serializers.BooleanField()
