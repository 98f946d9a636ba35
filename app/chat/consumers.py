"""
WebSocket consumers for the chat application.

This module implements the WebSocket consumer for real-time chat: session
registration, presence, conversation rooms and the client event protocol.

Consumers:
    ChatConsumer: One per websocket session at ws/chat/

Authentication:
    Users are authenticated by JWTAuthMiddleware, which attaches the user
    to self.scope["user"]. Anonymous handshakes are closed with code 4001.

Channel Groups:
    user_{id}    Personal channel, every session of a user joins it
    presence     Every session joins it; carries presence broadcasts
    {a}_{b}      Conversation room (chat.rooms.room_for), joined on demand

Client frames:
    {"event": "send_message", "data": {...}, "ref": <opaque>}

    Every frame is answered with an ack carrying the same ref:
    {"event": "ack", "ref": <opaque>, "data": {"success": bool, "message": str, ...}}

    join_conversation   {otherUserId}                -> {roomName}
    leave_conversation  {otherUserId}                -> {roomName}
    send_message        {receiverId, content, messageType?}
                                                     -> {messageData, roomName}
    start_typing        {receiverId}                 -> {delivered}
    stop_typing         {receiverId}                 -> {delivered}
    mark_messages_read  {otherUserId}                -> {updatedCount}
    update_status       {status}                     -> {status}
    heartbeat           {}                           -> {lastSeen}
    get_online_users    {}                           -> {onlineUsers, totalOnline}
    get_user_status     {userId}                     -> {userId, status, isOnline, lastSeen}

Server pushes:
    {"event": <name>, "data": {...}} for new_message, user_typing,
    messages_read, message_deleted, user_online, user_offline,
    user_status_changed, connection_request_received and
    connection_request_responded.

A failing handler produces a failed ack; the session stays open.
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth import get_user_model

from chat.constants import PRESENCE_CONFIG, ChatEvent, ErrorCode
from chat.registry import ConnectionRegistry
from chat.rooms import PRESENCE_GROUP, personal_channel, room_for
from chat.serializers import message_event_payload
from chat.services import MessageService, PresenceService, TypingService
from core.exceptions import SelfTargetError
from core.helpers import coerce_int_id
from core.services import ServiceResult

logger = logging.getLogger(__name__)

JWT_SUBPROTOCOL = "jwt"


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat functionality.

    Handles:
        - Connection authentication and session registration
        - Presence (online on first session, offline on last)
        - Joining/leaving conversation rooms
        - Sending messages, typing indicators and read receipts

    Attributes:
        registry: Process-wide ConnectionRegistry, injected through
            ``ChatConsumer.as_asgi(registry=...)``
        user: Authenticated user (after connect)
        joined_rooms: Conversation rooms this session joined
    """

    registry: ConnectionRegistry | None = None

    # event name -> handler method
    handlers = {
        "join_conversation": "handle_join_conversation",
        "leave_conversation": "handle_leave_conversation",
        "send_message": "handle_send_message",
        "start_typing": "handle_start_typing",
        "stop_typing": "handle_stop_typing",
        "mark_messages_read": "handle_mark_messages_read",
        "update_status": "handle_update_status",
        "heartbeat": "handle_heartbeat",
        "get_online_users": "handle_get_online_users",
        "get_user_status": "handle_get_user_status",
    }

    def __init__(self, *args, registry: ConnectionRegistry | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        if registry is None:
            raise TypeError("ChatConsumer requires a registry")
        self.registry = registry
        self.user = None
        self.joined_rooms: set[str] = set()

    async def connect(self):
        """
        Handle WebSocket connection.

        Rejects anonymous users with 4001. Otherwise registers the session,
        joins the personal and presence groups, accepts, and marks the user
        online (broadcasting user_online on the first session).
        """
        user = self.scope.get("user")

        if not user or not user.is_authenticated:
            logger.warning("Rejected unauthenticated websocket connection")
            await self.close(code=4001)
            return

        self.user = user
        await self.channel_layer.group_add(personal_channel(user.id), self.channel_name)
        await self.channel_layer.group_add(PRESENCE_GROUP, self.channel_name)

        if JWT_SUBPROTOCOL in self.scope.get("subprotocols", []):
            await self.accept(subprotocol=JWT_SUBPROTOCOL)
        else:
            await self.accept()

        first_session = self.registry.attach(user.id, self.channel_name)
        await database_sync_to_async(PresenceService.connect)(
            user, self.channel_name, first_session=first_session
        )
        logger.info(f"User {user.id} connected ({self.channel_name})")

    async def disconnect(self, close_code):
        """
        Handle WebSocket disconnection.

        Leaves every group and, when this was the user's last session,
        marks the user offline.
        """
        if self.user is None:
            return

        last_session = self.registry.detach(self.user.id, self.channel_name)

        groups = {personal_channel(self.user.id), PRESENCE_GROUP, *self.joined_rooms}
        for group in groups:
            await self.channel_layer.group_discard(group, self.channel_name)
        self.joined_rooms.clear()

        await database_sync_to_async(PresenceService.disconnect)(
            self.user, self.channel_name, last_session=last_session
        )
        logger.info(
            f"User {self.user.id} disconnected ({self.channel_name}, code {close_code})"
        )

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        """Decode a frame; malformed JSON gets a failed ack instead of a close."""
        if text_data is None:
            await self._send_ack(None, self._failure("Binary frames are not supported"))
            return
        try:
            content = await self.decode_json(text_data)
        except ValueError:
            await self._send_ack(None, self._failure("Malformed frame"))
            return
        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        """
        Dispatch a client frame and acknowledge it.

        Expected frame format:
            {"event": "send_message", "data": {"receiverId": 7, "content": "Hi"}, "ref": 1}
        """
        if not isinstance(content, dict):
            await self._send_ack(None, self._failure("Malformed frame"))
            return

        ref = content.get("ref")
        event = content.get("event")
        data = content.get("data") or {}

        handler_name = self.handlers.get(event) if isinstance(event, str) else None
        if handler_name is None:
            await self._send_ack(ref, self._failure(f"Unknown event: {event}"))
            return
        if not isinstance(data, dict):
            await self._send_ack(ref, self._failure("Event data must be an object"))
            return

        try:
            ack = await getattr(self, handler_name)(data)
        except Exception:
            logger.exception(f"Error handling {event} for user {self.user.id}")
            ack = self._failure("Internal error")

        await self._send_ack(ref, ack)

    # =========================================================================
    # Client event handlers
    # =========================================================================

    async def handle_join_conversation(self, data) -> dict:
        room, error = await self._room_with(data.get("otherUserId"))
        if error:
            return error

        await self.channel_layer.group_add(room, self.channel_name)
        self.joined_rooms.add(room)
        return self._success("Joined conversation", roomName=room)

    async def handle_leave_conversation(self, data) -> dict:
        room, error = await self._room_with(data.get("otherUserId"), check_exists=False)
        if error:
            return error

        await self.channel_layer.group_discard(room, self.channel_name)
        self.joined_rooms.discard(room)
        return self._success("Left conversation", roomName=room)

    async def handle_send_message(self, data) -> dict:
        return await self._send_message(
            data.get("receiverId"),
            data.get("content"),
            data.get("messageType") or "text",
        )

    async def handle_start_typing(self, data) -> dict:
        result = await database_sync_to_async(TypingService.start_typing)(
            self.user, data.get("receiverId"), registry=self.registry
        )
        if not result.success:
            return self._failure_from(result)
        return self._success("Typing started", delivered=result.data["delivered"])

    async def handle_stop_typing(self, data) -> dict:
        result = await database_sync_to_async(TypingService.stop_typing)(
            self.user, data.get("receiverId"), registry=self.registry
        )
        if not result.success:
            return self._failure_from(result)
        return self._success("Typing stopped", delivered=result.data["delivered"])

    async def handle_mark_messages_read(self, data) -> dict:
        result = await database_sync_to_async(MessageService.mark_read)(
            self.user, data.get("otherUserId")
        )
        if not result.success:
            return self._failure_from(result)
        return self._success(
            "Messages marked as read", updatedCount=result.data["updated_count"]
        )

    async def handle_update_status(self, data) -> dict:
        result = await database_sync_to_async(PresenceService.update_status)(
            self.user, data.get("status")
        )
        if not result.success:
            return self._failure_from(result)
        return self._success("Status updated", status=result.data.status)

    async def handle_heartbeat(self, data) -> dict:
        result = await database_sync_to_async(PresenceService.heartbeat)(self.user)
        return self._success("ok", lastSeen=result.data.last_seen.isoformat())

    async def handle_get_online_users(self, data) -> dict:
        online_users, total = await self._online_users()
        return self._success(
            "Online users retrieved", onlineUsers=online_users, totalOnline=total
        )

    async def handle_get_user_status(self, data) -> dict:
        result = await database_sync_to_async(PresenceService.get_presence)(
            data.get("userId")
        )
        if not result.success:
            return self._failure_from(result)

        presence = result.data
        last_seen = presence["last_seen"]
        return self._success(
            "User status retrieved",
            userId=presence["user_id"],
            username=presence["username"],
            status=presence["status"],
            # Sessions of this process only; other workers show up via status
            isOnline=self.registry.is_online(presence["user_id"]),
            lastSeen=last_seen.isoformat() if last_seen else None,
        )

    # =========================================================================
    # Channel layer events
    # =========================================================================

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Forwards {"event", "data"} to the client unless this session or
        this user is excluded.
        """
        if event.get("exclude_channel") == self.channel_name:
            return
        exclude_user = event.get("exclude_user")
        if exclude_user is not None and self.user and exclude_user == str(self.user.id):
            return

        await self.send_json({"event": event["event"], "data": event["data"]})

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _send_ack(self, ref, ack: dict):
        await self.send_json({"event": ChatEvent.ACK, "ref": ref, "data": ack})

    @staticmethod
    def _success(message: str, **extra) -> dict:
        return {"success": True, "message": message, **extra}

    @staticmethod
    def _failure(message: str, error_code: str = ErrorCode.VALIDATION_ERROR) -> dict:
        return {"success": False, "message": message, "errorCode": error_code}

    @classmethod
    def _failure_from(cls, result) -> dict:
        return cls._failure(result.error, result.error_code)

    async def _room_with(self, other_user_id, check_exists: bool = True):
        """Resolve the room shared with another user, or a failed ack."""
        other_pk = coerce_int_id(other_user_id)
        if other_pk is None:
            return None, self._failure("otherUserId is required")
        try:
            room = room_for(self.user.id, other_pk)
        except SelfTargetError as exc:
            return None, self._failure_from(ServiceResult.from_exception(exc))
        if check_exists and not await self._user_exists(other_pk):
            return None, self._failure("User not found", ErrorCode.NOT_FOUND)
        return room, None

    @database_sync_to_async
    def _user_exists(self, user_id) -> bool:
        return get_user_model().objects.filter(pk=user_id, is_active=True).exists()

    @database_sync_to_async
    def _online_users(self) -> tuple[list[dict], int]:
        records = PresenceService.get_online_users()
        online_users = [
            {
                "userId": record.user_id,
                "username": record.user.display_name,
                "status": record.status,
            }
            for record in records[: PRESENCE_CONFIG.ONLINE_MAX_LIMIT]
        ]
        return online_users, records.count()

    @database_sync_to_async
    def _send_message(self, receiver_id, content, message_type) -> dict:
        """
        Send a message using MessageService.

        Runs in a worker thread; the payload is built here because it
        reads the sender's profile.
        """
        result = MessageService.send_message(
            sender=self.user,
            receiver_id=receiver_id,
            content=content,
            message_type=message_type,
        )
        if not result.success:
            return self._failure_from(result)

        message = result.data
        return self._success(
            "Message sent",
            messageData=message_event_payload(message),
            roomName=room_for(message.sender_id, message.receiver_id),
        )
