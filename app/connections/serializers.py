"""
Serializers for the connections API.
"""

from rest_framework import serializers

from authentication.serializers import UserSerializer
from connections.models import Connection


class ConnectionSerializer(serializers.ModelSerializer):
    """Read shape of a connection with both users embedded."""

    requester = UserSerializer(read_only=True)
    receiver = UserSerializer(read_only=True)

    class Meta:
        model = Connection
        fields = [
            "id",
            "requester",
            "receiver",
            "status",
            "message",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ConnectionRequestSerializer(serializers.Serializer):
    """Payload for POST /connections/."""

    receiver_id = serializers.IntegerField()
    message = serializers.CharField(
        required=False, allow_blank=True, max_length=500, default=""
    )


class ConnectionRespondSerializer(serializers.Serializer):
    """Payload for PUT /connections/<id>/respond/."""

    action = serializers.ChoiceField(choices=["accept", "reject"])
