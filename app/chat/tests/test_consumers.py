"""
End-to-end tests for ChatConsumer.

Sessions connect through JWTAuthMiddleware and the real URL router, with
the in-memory channel layer. The consumer runs its database work in worker
threads, so these tests need transactional database access.
"""

import json

import pytest
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from rest_framework_simplejwt.tokens import RefreshToken

from chat.middleware import JWTAuthMiddleware
from chat.models import Message, PresenceRecord
from chat.registry import ConnectionRegistry
from chat.rooms import room_for
from chat.routing import build_websocket_urlpatterns

pytestmark = pytest.mark.django_db(transaction=True)


# =============================================================================
# Helpers
# =============================================================================


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def application(registry):
    return JWTAuthMiddleware(URLRouter(build_websocket_urlpatterns(registry)))


@pytest.fixture
def open_session(application):
    """Connect a user through the full websocket stack and return the communicator."""

    async def _open(user):
        token = RefreshToken.for_user(user).access_token
        communicator = WebsocketCommunicator(application, f"/ws/chat/?token={token}")
        connected, _ = await communicator.connect()
        assert connected
        return communicator

    return _open


async def receive_event(communicator, name, timeout=2):
    """Return the next frame with the given event name, skipping others."""
    while True:
        frame = await communicator.receive_json_from(timeout=timeout)
        if frame["event"] == name:
            return frame


async def request(communicator, event, data=None, ref=1):
    await communicator.send_json_to({"event": event, "data": data or {}, "ref": ref})
    return await receive_event(communicator, "ack")


@database_sync_to_async
def presence_status(user):
    return PresenceRecord.objects.get(user=user).status


# =============================================================================
# Handshake
# =============================================================================


class TestHandshake:
    """Tests for ChatConsumer.connect() and JWT handshake."""

    async def test_anonymous_closed_with_4001(self, application):
        communicator = WebsocketCommunicator(application, "/ws/chat/")

        connected, code = await communicator.connect()

        assert connected is False
        assert code == 4001

    async def test_invalid_token_closed_with_4001(self, application):
        communicator = WebsocketCommunicator(application, "/ws/chat/?token=garbage")

        connected, code = await communicator.connect()

        assert connected is False
        assert code == 4001

    async def test_subprotocol_token_accepted(self, application, alice):
        token = str(RefreshToken.for_user(alice).access_token)
        communicator = WebsocketCommunicator(
            application, "/ws/chat/", subprotocols=["jwt", token]
        )

        connected, subprotocol = await communicator.connect()

        assert connected is True
        assert subprotocol == "jwt"
        await communicator.disconnect()

    async def test_connect_registers_session_and_goes_online(
        self, open_session, registry, alice
    ):
        session = await open_session(alice)

        assert registry.is_online(alice.id)
        assert await presence_status(alice) == "online"
        await session.disconnect()

    async def test_first_session_broadcasts_user_online(self, open_session, alice, bob):
        bob_session = await open_session(bob)
        alice_session = await open_session(alice)

        frame = await receive_event(bob_session, "user_online")

        assert frame["data"]["userId"] == alice.id
        await alice_session.disconnect()
        await bob_session.disconnect()


# =============================================================================
# Sessions
# =============================================================================


class TestDisconnect:
    """Tests for ChatConsumer.disconnect()."""

    async def test_user_offline_only_after_last_session(
        self, open_session, registry, alice, bob
    ):
        """
        Closing one of two tabs keeps the user online.

        Why it matters: Multi-device users must not appear offline while a
        session is still open.
        """
        bob_session = await open_session(bob)
        first = await open_session(alice)
        second = await open_session(alice)

        await first.disconnect()
        assert await presence_status(alice) == "online"
        assert len(registry.sessions_of(alice.id)) == 1

        await second.disconnect()
        assert await presence_status(alice) == "offline"
        assert not registry.is_online(alice.id)

        frame = await receive_event(bob_session, "user_offline")
        assert frame["data"]["userId"] == alice.id
        await bob_session.disconnect()


# =============================================================================
# Client events
# =============================================================================


class TestFrames:
    """Tests for frame decoding and acks."""

    async def test_unknown_event_fails_with_ref(self, open_session, alice):
        session = await open_session(alice)

        ack = await request(session, "dance", ref="r-1")

        assert ack["ref"] == "r-1"
        assert ack["data"]["success"] is False
        assert ack["data"]["errorCode"] == "VALIDATION_ERROR"
        await session.disconnect()

    async def test_malformed_json_fails_and_session_stays_open(self, open_session, alice):
        session = await open_session(alice)

        await session.send_to(text_data="{not json")
        ack = await receive_event(session, "ack")
        assert ack["ref"] is None
        assert ack["data"]["success"] is False

        ack = await request(session, "heartbeat", ref=2)
        assert ack["data"]["success"] is True
        assert ack["data"]["lastSeen"]
        await session.disconnect()

    async def test_non_object_data_fails(self, open_session, alice):
        session = await open_session(alice)

        await session.send_to(
            text_data=json.dumps({"event": "heartbeat", "data": [1], "ref": 5})
        )
        ack = await receive_event(session, "ack")

        assert ack["ref"] == 5
        assert ack["data"]["success"] is False
        await session.disconnect()


class TestConversationEvents:
    """Tests for join/leave, send_message and typing over the socket."""

    async def test_join_conversation_returns_room(self, open_session, alice, bob):
        session = await open_session(alice)

        ack = await request(session, "join_conversation", {"otherUserId": bob.id})

        assert ack["data"]["success"] is True
        assert ack["data"]["roomName"] == room_for(alice.id, bob.id)
        await session.disconnect()

    async def test_join_with_self_rejected(self, open_session, alice):
        session = await open_session(alice)

        ack = await request(session, "join_conversation", {"otherUserId": alice.id})

        assert ack["data"]["errorCode"] == "SELF_TARGET"
        await session.disconnect()

    async def test_join_unknown_user_rejected(self, open_session, alice):
        session = await open_session(alice)

        ack = await request(session, "join_conversation", {"otherUserId": 999999})

        assert ack["data"]["errorCode"] == "NOT_FOUND"
        await session.disconnect()

    async def test_send_message_reaches_receiver(self, open_session, alice, bob, connected):
        bob_session = await open_session(bob)
        alice_session = await open_session(alice)
        await request(bob_session, "join_conversation", {"otherUserId": alice.id})

        ack = await request(
            alice_session, "send_message", {"receiverId": bob.id, "content": "Hello"}
        )

        assert ack["data"]["success"] is True
        assert ack["data"]["roomName"] == room_for(alice.id, bob.id)
        message_id = ack["data"]["messageData"]["messageId"]

        frame = await receive_event(bob_session, "new_message")
        assert frame["data"]["messageId"] == message_id
        assert frame["data"]["content"] == "Hello"
        assert frame["data"]["senderId"] == alice.id

        exists = await database_sync_to_async(
            Message.objects.filter(pk=message_id).exists
        )()
        assert exists
        await alice_session.disconnect()
        await bob_session.disconnect()

    async def test_send_message_to_stranger_fails(self, open_session, alice, carol):
        session = await open_session(alice)

        ack = await request(
            session, "send_message", {"receiverId": carol.id, "content": "Hi"}
        )

        assert ack["data"]["success"] is False
        assert ack["data"]["errorCode"] == "FORBIDDEN"
        await session.disconnect()

    async def test_typing_reaches_peer_but_not_sender(self, open_session, alice, bob):
        bob_session = await open_session(bob)
        alice_session = await open_session(alice)
        await request(alice_session, "join_conversation", {"otherUserId": bob.id})
        await request(bob_session, "join_conversation", {"otherUserId": alice.id})

        ack = await request(alice_session, "start_typing", {"receiverId": bob.id})

        assert ack["data"]["success"] is True
        assert ack["data"]["delivered"] is True
        frame = await receive_event(bob_session, "user_typing")
        assert frame["data"]["userId"] == alice.id
        assert frame["data"]["isTyping"] is True
        assert await alice_session.receive_nothing(timeout=0.2)

        await alice_session.disconnect()
        await bob_session.disconnect()

    async def test_leave_conversation(self, open_session, alice, bob):
        session = await open_session(alice)
        await request(session, "join_conversation", {"otherUserId": bob.id})

        ack = await request(session, "leave_conversation", {"otherUserId": bob.id})

        assert ack["data"]["success"] is True
        await session.disconnect()


class TestPresenceEvents:
    """Tests for update_status and mark_messages_read over the socket."""

    async def test_update_status_broadcasts(self, open_session, alice, bob):
        bob_session = await open_session(bob)
        alice_session = await open_session(alice)

        ack = await request(alice_session, "update_status", {"status": "busy"})

        assert ack["data"]["status"] == "busy"
        frame = await receive_event(bob_session, "user_status_changed")
        assert frame["data"]["status"] == "busy"
        await alice_session.disconnect()
        await bob_session.disconnect()

    async def test_get_online_users(self, open_session, alice, bob):
        alice_session = await open_session(alice)
        bob_session = await open_session(bob)

        ack = await request(alice_session, "get_online_users")

        assert ack["data"]["success"] is True
        assert ack["data"]["totalOnline"] == 2
        listed = {entry["userId"]: entry for entry in ack["data"]["onlineUsers"]}
        assert set(listed) == {alice.id, bob.id}
        assert listed[bob.id]["username"] == "bob"
        assert listed[bob.id]["status"] == "online"
        await alice_session.disconnect()
        await bob_session.disconnect()

    async def test_get_user_status_of_connected_user(self, open_session, alice, bob):
        bob_session = await open_session(bob)
        alice_session = await open_session(alice)

        ack = await request(alice_session, "get_user_status", {"userId": bob.id})

        assert ack["data"]["success"] is True
        assert ack["data"]["userId"] == bob.id
        assert ack["data"]["status"] == "online"
        assert ack["data"]["isOnline"] is True
        assert ack["data"]["lastSeen"]
        await alice_session.disconnect()
        await bob_session.disconnect()

    async def test_get_user_status_of_absent_user(self, open_session, alice, carol):
        session = await open_session(alice)

        ack = await request(session, "get_user_status", {"userId": carol.id})

        assert ack["data"]["status"] == "offline"
        assert ack["data"]["isOnline"] is False
        await session.disconnect()

    async def test_get_user_status_requires_user_id(self, open_session, alice):
        session = await open_session(alice)

        ack = await request(session, "get_user_status", {})

        assert ack["data"]["success"] is False
        assert ack["data"]["errorCode"] == "VALIDATION_ERROR"
        await session.disconnect()

    async def test_invalid_status_fails(self, open_session, alice):
        session = await open_session(alice)

        ack = await request(session, "update_status", {"status": "sleeping"})

        assert ack["data"]["success"] is False
        await session.disconnect()

    async def test_mark_read_notifies_sender(self, open_session, alice, bob, connected):
        alice_session = await open_session(alice)
        bob_session = await open_session(bob)
        await request(alice_session, "send_message", {"receiverId": bob.id, "content": "Hi"})

        ack = await request(bob_session, "mark_messages_read", {"otherUserId": alice.id})

        assert ack["data"]["updatedCount"] == 1
        frame = await receive_event(alice_session, "messages_read")
        assert frame["data"]["readBy"] == bob.id
        await alice_session.disconnect()
        await bob_session.disconnect()
