"""
Tests for chat API views.

Requests go through the real URLs and JWT authentication; events are
sent to the in-memory channel layer configured by the root conftest.
"""

import uuid
from datetime import timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from chat.models import Message, PresenceRecord
from chat.rooms import room_for
from chat.tests.factories import MessageFactory, PresenceRecordFactory

MESSAGES_URL = reverse("chat:message-create")
CONVERSATIONS_URL = reverse("chat:conversation-list")
UNREAD_URL = reverse("chat:unread-count")
PRESENCE_URL = reverse("chat:presence")
ONLINE_URL = reverse("chat:presence-online")
TYPING_URL = reverse("chat:presence-typing")
HEARTBEAT_URL = reverse("chat:presence-heartbeat")


def conversation_url(user_id):
    return reverse("chat:conversation-detail", kwargs={"other_user_id": user_id})


def read_url(user_id):
    return reverse("chat:mark-read", kwargs={"other_user_id": user_id})


def message_url(message_id):
    return reverse("chat:message-detail", kwargs={"message_id": message_id})


def presence_url(user_id):
    return reverse("chat:presence-user", kwargs={"user_id": user_id})


class TestAuthentication:
    """Every chat endpoint requires a token."""

    def test_anonymous_rejected(self, db):
        client = APIClient()

        assert client.get(CONVERSATIONS_URL).status_code == status.HTTP_401_UNAUTHORIZED
        assert client.post(MESSAGES_URL, {}).status_code == status.HTTP_401_UNAUTHORIZED
        assert client.get(ONLINE_URL).status_code == status.HTTP_401_UNAUTHORIZED


class TestMessageCreateView:
    """Tests for POST /api/v1/chat/messages/."""

    def test_send_message(self, alice_client, alice, bob, connected):
        response = alice_client.post(
            MESSAGES_URL,
            {"receiver_id": bob.id, "content": "Hello"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["content"] == "Hello"
        assert response.data["sender_id"] == alice.id
        assert response.data["sender_username"] == "alice"
        assert response.data["message_type"] == "text"
        assert Message.objects.filter(sender=alice, receiver=bob).count() == 1

    def test_not_connected_forbidden(self, alice_client, carol):
        response = alice_client.post(
            MESSAGES_URL,
            {"receiver_id": carol.id, "content": "Hello"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "FORBIDDEN"

    def test_self_message_bad_request(self, alice_client, alice):
        response = alice_client.post(
            MESSAGES_URL,
            {"receiver_id": alice.id, "content": "me"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "SELF_TARGET"

    def test_blank_content_bad_request(self, alice_client, bob, connected):
        response = alice_client.post(
            MESSAGES_URL,
            {"receiver_id": bob.id, "content": "   "},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"

    def test_unknown_receiver_not_found(self, alice_client):
        response = alice_client.post(
            MESSAGES_URL,
            {"receiver_id": 999999, "content": "hi"},
            format="json",
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_missing_fields_bad_request(self, alice_client):
        response = alice_client.post(MESSAGES_URL, {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "receiver_id" in response.data


class TestMessageDetailView:
    """Tests for DELETE /api/v1/chat/messages/{id}/."""

    def test_sender_deletes(self, alice_client, alice, bob):
        message = MessageFactory(sender=alice, receiver=bob)

        response = alice_client.delete(message_url(message.id))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Message.objects.filter(pk=message.pk).exists()

    def test_receiver_forbidden(self, bob_client, alice, bob):
        message = MessageFactory(sender=alice, receiver=bob)

        response = bob_client.delete(message_url(message.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_not_found(self, alice_client):
        response = alice_client.delete(message_url(uuid.uuid4()))

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestConversationViews:
    """Tests for the conversation list and history endpoints."""

    def test_list_conversations(self, alice_client, alice, bob):
        MessageFactory(sender=bob, receiver=alice, content="latest")

        response = alice_client.get(CONVERSATIONS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["total"] == 1
        entry = response.data["conversations"][0]
        assert entry["partner"]["id"] == bob.id
        assert entry["partner"]["username"] == "bob"
        assert entry["last_message"]["content"] == "latest"
        assert entry["unread_count"] == 1

    def test_history_oldest_first(self, alice_client, alice, bob, set_created_at):
        now = timezone.now()
        set_created_at(MessageFactory(sender=alice, receiver=bob, content="first"), now - timedelta(minutes=2))
        set_created_at(MessageFactory(sender=bob, receiver=alice, content="second"), now - timedelta(minutes=1))

        response = alice_client.get(conversation_url(bob.id))

        assert response.status_code == status.HTTP_200_OK
        assert [m["content"] for m in response.data["messages"]] == ["first", "second"]
        assert response.data["total"] == 2
        assert response.data["page"] == 1
        assert response.data["has_more"] is False

    def test_history_with_cursor(self, alice_client, alice, bob, set_created_at):
        now = timezone.now()
        older = set_created_at(MessageFactory(sender=alice, receiver=bob, content="older"), now - timedelta(minutes=2))
        newer = set_created_at(MessageFactory(sender=bob, receiver=alice), now - timedelta(minutes=1))

        response = alice_client.get(conversation_url(bob.id), {"before": str(newer.id)})

        assert [m["id"] for m in response.data["messages"]] == [str(older.id)]
        assert response.data["page"] is None

    def test_history_invalid_cursor(self, alice_client, bob):
        response = alice_client.get(conversation_url(bob.id), {"before": "nope"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_history_with_self_bad_request(self, alice_client, alice):
        response = alice_client.get(conversation_url(alice.id))

        assert response.data["error_code"] == "SELF_TARGET"

    def test_history_unknown_user(self, alice_client):
        response = alice_client.get(conversation_url(999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestReadViews:
    """Tests for mark-read and unread-count endpoints."""

    def test_mark_read(self, alice_client, alice, bob):
        MessageFactory.create_batch(2, sender=bob, receiver=alice)

        response = alice_client.put(read_url(bob.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["updated_count"] == 2
        assert response.data["other_user_id"] == bob.id

    def test_unread_count(self, alice_client, alice, bob):
        MessageFactory.create_batch(3, sender=bob, receiver=alice)

        response = alice_client.get(UNREAD_URL)

        assert response.data == {"unread_count": 3}

    def test_unread_count_drops_after_read(self, alice_client, alice, bob):
        MessageFactory.create_batch(3, sender=bob, receiver=alice)
        alice_client.put(read_url(bob.id))

        assert alice_client.get(UNREAD_URL).data == {"unread_count": 0}


class TestPresenceViews:
    """Tests for the presence endpoints."""

    def test_set_status(self, alice_client, alice):
        response = alice_client.put(PRESENCE_URL, {"status": "busy"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "busy"
        assert response.data["user_id"] == alice.id
        assert PresenceRecord.objects.get(user=alice).status == "busy"

    def test_invalid_status(self, alice_client):
        response = alice_client.put(PRESENCE_URL, {"status": "sleeping"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_user_presence(self, alice_client, bob):
        PresenceRecordFactory(user=bob, status="away")

        response = alice_client.get(presence_url(bob.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "away"
        assert response.data["username"] == "bob"

    def test_user_presence_never_connected(self, alice_client, bob):
        response = alice_client.get(presence_url(bob.id))

        assert response.data["status"] == "offline"
        assert response.data["is_typing"] is False

    def test_user_presence_unknown(self, alice_client):
        response = alice_client.get(presence_url(999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_online_users_paginated(self, alice_client, alice, bob, carol):
        PresenceRecordFactory(user=bob)
        PresenceRecordFactory(user=carol, status="offline")

        response = alice_client.get(ONLINE_URL, {"limit": 10})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 1
        assert response.data["results"][0]["user_id"] == bob.id
        assert response.data["results"][0]["username"] == "bob"

    def test_heartbeat(self, alice_client, alice):
        response = alice_client.post(HEARTBEAT_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "online"
        assert PresenceRecord.objects.filter(user=alice).exists()


class TestTypingView:
    """Tests for PUT /api/v1/chat/presence/typing/."""

    def test_start_typing(self, alice_client, alice, bob):
        response = alice_client.put(
            TYPING_URL, {"isTyping": True, "otherUserId": bob.id}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["room_name"] == room_for(alice.id, bob.id)
        assert response.data["delivered"] is False
        assert PresenceRecord.objects.get(user=alice).typing_target_id == bob.id

    def test_stop_typing(self, alice_client, alice, bob):
        PresenceRecordFactory(user=alice, typing_target=bob, typing_started_at=timezone.now())

        response = alice_client.put(
            TYPING_URL, {"isTyping": False, "otherUserId": bob.id}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert PresenceRecord.objects.get(user=alice).typing_target_id is None

    def test_delivered_when_receiver_online(self, alice_client, bob):
        PresenceRecordFactory(user=bob)

        response = alice_client.put(
            TYPING_URL, {"isTyping": True, "otherUserId": bob.id}, format="json"
        )

        assert response.data["delivered"] is True

    def test_self_typing_rejected(self, alice_client, alice):
        response = alice_client.put(
            TYPING_URL, {"isTyping": True, "otherUserId": alice.id}, format="json"
        )

        assert response.data["error_code"] == "SELF_TARGET"
