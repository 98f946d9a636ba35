"""
Chat system service layer.

This module provides the business logic for direct messaging, typing
indicators and presence.

Services:
    MessageService: Send, delete, read receipts, history and conversation list
    TypingService: Start/stop typing toward another user
    PresenceService: Connect/disconnect, status changes, heartbeat, snapshots

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Unexpected failures (database errors) raise exceptions
    - State is persisted before any event is emitted
    - Events are best effort: a TransportError is logged, never returned

Every emitting method takes an optional ``transport`` (defaults to the
channel layer transport), so callers and tests can swap the fan-out.

Usage:
    from chat.services import MessageService, PresenceService

    result = MessageService.send_message(sender, receiver_id=7, content="Hi")
    if result.success:
        message = result.data

    PresenceService.heartbeat(user)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import models
from django.db.models import Case, Count, F, Max, Q, When, Window
from django.db.models.functions import RowNumber
from django.utils import timezone

from chat.constants import MESSAGE_CONFIG, ChatEvent, ErrorCode, presence_setting
from chat.models import Message, MessageType, PresenceRecord, PresenceStatus
from chat.rooms import room_for
from chat.serializers import message_event_payload
from chat.transport import get_transport, publish
from connections.services import ConnectionService
from core.helpers import coerce_int_id, coerce_uuid, normalize_page_params
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from authentication.models import User as UserType
    from chat.registry import ConnectionRegistry

User = get_user_model()


@dataclass
class ConversationPage:
    """One page of a two-user conversation, oldest message first."""

    messages: list[Message]
    total: int
    page: int | None
    limit: int
    total_pages: int
    has_more: bool


@dataclass
class ConversationSummary:
    """Latest message exchanged with a peer and the unread count from them."""

    partner: UserType
    last_message: Message
    unread_count: int = 0


@dataclass
class ConversationList:
    conversations: list[ConversationSummary] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = MESSAGE_CONFIG.CONVERSATIONS_DEFAULT_LIMIT
    total_pages: int = 0


def _self_target(message: str) -> ServiceResult:
    return ServiceResult.failure(message, error_code=ErrorCode.SELF_TARGET)


def _user_not_found() -> ServiceResult:
    return ServiceResult.failure("User not found", error_code=ErrorCode.NOT_FOUND)


class MessageService(BaseService):
    """
    Service for direct message operations.

    Methods:
        send_message: Persist a message and fan it out
        mark_read: Mark everything from one peer as read
        delete_message: Hard delete (sender only)
        get_conversation: History between two users (page or cursor)
        get_conversations: Latest message per peer
        get_unread_count: Unread messages addressed to a user
    """

    @classmethod
    def send_message(
        cls,
        sender: UserType,
        receiver_id,
        content: str,
        message_type: str = MessageType.TEXT,
        transport=None,
    ) -> ServiceResult[Message]:
        """
        Send a direct message.

        Emits ``new_message`` to the conversation room and to the
        receiver's personal channel. Clients dedupe by messageId.

        Error codes:
            VALIDATION_ERROR: Missing receiver, empty/too long content, bad type
            SELF_TARGET: Sender and receiver are the same user
            NOT_FOUND: Receiver does not exist or is inactive
            FORBIDDEN: No accepted connection between the two users
        """
        receiver_pk = coerce_int_id(receiver_id)
        if receiver_pk is None:
            return ServiceResult.failure(
                "receiverId is required", error_code=ErrorCode.VALIDATION_ERROR
            )
        if receiver_pk == sender.id:
            return _self_target("You cannot send a message to yourself")

        content = content.strip() if isinstance(content, str) else ""
        if not content:
            return ServiceResult.failure(
                "Message content cannot be empty",
                error_code=ErrorCode.VALIDATION_ERROR,
            )
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content cannot exceed "
                f"{MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code=ErrorCode.VALIDATION_ERROR,
            )
        if message_type not in MessageType.values:
            return ServiceResult.failure(
                f"Invalid message type: {message_type}",
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        receiver = User.objects.filter(pk=receiver_pk, is_active=True).first()
        if receiver is None:
            return _user_not_found()

        if not ConnectionService.are_connected(sender, receiver):
            return ServiceResult.failure(
                "You can only message your connections",
                error_code=ErrorCode.FORBIDDEN,
            )

        message = Message.objects.create(
            sender=sender,
            receiver=receiver,
            content=content,
            message_type=message_type,
        )
        TypingService.clear_typing(sender, target=receiver)

        cls.get_logger().debug(
            f"User {sender.id} sent message {message.id} to user {receiver.id}"
        )

        transport = transport or get_transport()
        payload = message_event_payload(message)
        publish(
            transport,
            "emit_to_room",
            room_for(sender.id, receiver.id),
            ChatEvent.NEW_MESSAGE,
            payload,
        )
        publish(transport, "emit_to_user", receiver.id, ChatEvent.NEW_MESSAGE, payload)

        return ServiceResult.success(message)

    @classmethod
    def mark_read(
        cls,
        reader: UserType,
        other_user_id,
        transport=None,
    ) -> ServiceResult[dict]:
        """
        Mark every unread message from ``other_user_id`` to ``reader`` as read.

        Idempotent: a second call updates nothing but still emits
        ``messages_read`` to the other user, so their client can settle.

        Returns:
            ServiceResult with {"updated_count", "other_user_id", "read_at"}
        """
        other_pk = coerce_int_id(other_user_id)
        if other_pk is None:
            return ServiceResult.failure(
                "otherUserId is required", error_code=ErrorCode.VALIDATION_ERROR
            )
        if other_pk == reader.id:
            return _self_target("You cannot mark your own messages as read")
        if not User.objects.filter(pk=other_pk).exists():
            return _user_not_found()

        read_at = timezone.now()
        updated_count = Message.objects.filter(
            sender_id=other_pk,
            receiver=reader,
            is_read=False,
        ).update(is_read=True, read_at=read_at)

        if updated_count:
            cls.get_logger().debug(
                f"User {reader.id} read {updated_count} messages from user {other_pk}"
            )

        publish(
            transport or get_transport(),
            "emit_to_user",
            other_pk,
            ChatEvent.MESSAGES_READ,
            {
                "readBy": reader.id,
                "readByUsername": reader.display_name,
                "timestamp": read_at.isoformat(),
            },
        )

        return ServiceResult.success(
            {
                "updated_count": updated_count,
                "other_user_id": other_pk,
                "read_at": read_at,
            }
        )

    @classmethod
    def delete_message(
        cls,
        requester: UserType,
        message_id,
        transport=None,
    ) -> ServiceResult[None]:
        """
        Hard delete a message. Only its sender may delete it.

        Error codes:
            NOT_FOUND: Message does not exist
            FORBIDDEN: Requester is not the sender
        """
        message_pk = coerce_uuid(message_id)
        message = (
            Message.objects.filter(pk=message_pk).first() if message_pk else None
        )
        if message is None:
            return ServiceResult.failure(
                "Message not found", error_code=ErrorCode.NOT_FOUND
            )
        if message.sender_id != requester.id:
            return ServiceResult.failure(
                "You can only delete your own messages",
                error_code=ErrorCode.FORBIDDEN,
            )

        room = room_for(message.sender_id, message.receiver_id)
        message.delete()

        cls.get_logger().info(f"Message {message_pk} deleted by user {requester.id}")

        publish(
            transport or get_transport(),
            "emit_to_room",
            room,
            ChatEvent.MESSAGE_DELETED,
            {
                "messageId": str(message_pk),
                "deletedBy": requester.id,
                "timestamp": timezone.now().isoformat(),
            },
        )
        return ServiceResult.success(None)

    @classmethod
    def get_conversation(
        cls,
        user: UserType,
        other_user_id,
        page=1,
        limit=None,
        before=None,
    ) -> ServiceResult[ConversationPage]:
        """
        Get the message history between ``user`` and another user.

        Messages are selected newest first and returned oldest first. When
        ``before`` (a message id) is given, it wins over ``page``: the page
        holds the ``limit`` messages immediately older than that message.

        Error codes:
            VALIDATION_ERROR: Missing other user id, or a cursor that is not
                a message of this conversation
            SELF_TARGET: other_user_id is the user
            NOT_FOUND: Other user does not exist
        """
        other_pk = coerce_int_id(other_user_id)
        if other_pk is None:
            return ServiceResult.failure(
                "otherUserId is required", error_code=ErrorCode.VALIDATION_ERROR
            )
        if other_pk == user.id:
            return _self_target("You cannot open a conversation with yourself")
        if not User.objects.filter(pk=other_pk).exists():
            return _user_not_found()

        page, limit = normalize_page_params(
            page,
            limit if limit is not None else MESSAGE_CONFIG.HISTORY_DEFAULT_LIMIT,
            default_limit=MESSAGE_CONFIG.HISTORY_DEFAULT_LIMIT,
            max_limit=MESSAGE_CONFIG.HISTORY_MAX_LIMIT,
        )

        queryset = (
            Message.objects.between(user.id, other_pk)
            .select_related("sender__profile")
            .order_by("-created_at", "-id")
        )
        total = queryset.count()

        if before not in (None, ""):
            cursor_pk = coerce_uuid(before)
            cursor = (
                queryset.filter(pk=cursor_pk).values("id", "created_at").first()
                if cursor_pk
                else None
            )
            if cursor is None:
                return ServiceResult.failure(
                    "Cursor does not belong to this conversation",
                    error_code=ErrorCode.VALIDATION_ERROR,
                )
            older = queryset.filter(
                Q(created_at__lt=cursor["created_at"])
                | Q(created_at=cursor["created_at"], id__lt=cursor["id"])
            )
            messages = list(older[: limit + 1])
            has_more = len(messages) > limit
            messages = messages[:limit]
            page = None
        else:
            offset = (page - 1) * limit
            messages = list(queryset[offset : offset + limit])
            has_more = offset + len(messages) < total

        messages.reverse()

        return ServiceResult.success(
            ConversationPage(
                messages=messages,
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit) if total else 0,
                has_more=has_more,
            )
        )

    @classmethod
    def get_conversations(
        cls,
        user: UserType,
        page=1,
        limit=None,
    ) -> ServiceResult[ConversationList]:
        """
        List the peers ``user`` has exchanged messages with.

        Each entry carries the latest message of the pair and the number of
        unread messages from that peer. Newest conversation first.
        """
        page, limit = normalize_page_params(
            page,
            limit if limit is not None else MESSAGE_CONFIG.CONVERSATIONS_DEFAULT_LIMIT,
            default_limit=MESSAGE_CONFIG.CONVERSATIONS_DEFAULT_LIMIT,
            max_limit=MESSAGE_CONFIG.CONVERSATIONS_MAX_LIMIT,
        )

        partner = Case(
            When(sender=user, then=F("receiver")),
            default=F("sender"),
            output_field=models.BigIntegerField(),
        )
        partners = (
            Message.objects.involving(user)
            .order_by()
            .annotate(partner=partner)
            .values("partner")
            .annotate(last_at=Max("created_at"))
            .order_by("-last_at", "-partner")
        )
        total = partners.count()

        offset = (page - 1) * limit
        partner_ids = [row["partner"] for row in partners[offset : offset + limit]]

        users = User.objects.select_related("profile").in_bulk(partner_ids)
        unread = dict(
            Message.objects.filter(
                receiver=user, is_read=False, sender_id__in=partner_ids
            )
            .order_by()
            .values_list("sender")
            .annotate(count=Count("id"))
        )

        # Newest message per partner for the whole page
        latest_ids = (
            Message.objects.involving(user)
            .order_by()
            .annotate(partner=partner)
            .filter(partner__in=partner_ids)
            .annotate(
                rank=Window(
                    RowNumber(),
                    partition_by=[F("partner")],
                    order_by=[F("created_at").desc(), F("id").desc()],
                )
            )
            .filter(rank=1)
            .values_list("id", flat=True)
        )
        latest = {
            message.receiver_id if message.sender_id == user.id else message.sender_id: message
            for message in Message.objects.select_related("sender__profile")
            .in_bulk(list(latest_ids))
            .values()
        }

        conversations = []
        for partner_id in partner_ids:
            last_message = latest.get(partner_id)
            if last_message is None or partner_id not in users:
                continue
            conversations.append(
                ConversationSummary(
                    partner=users[partner_id],
                    last_message=last_message,
                    unread_count=unread.get(partner_id, 0),
                )
            )

        return ServiceResult.success(
            ConversationList(
                conversations=conversations,
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit) if total else 0,
            )
        )

    @classmethod
    def get_unread_count(cls, user: UserType) -> ServiceResult[int]:
        """Number of unread messages addressed to ``user``."""
        return ServiceResult.success(Message.objects.unread_for(user).count())


class TypingService(BaseService):
    """
    Service for typing indicators.

    Typing state lives on the sender's PresenceRecord (typing_target and
    typing_started_at, always set or cleared together). Sending a message
    clears it; the sweeper clears it when it is older than the typing
    window, without emitting a stop event. Clients time out indicators
    they never saw a stop for.
    """

    @classmethod
    def start_typing(
        cls,
        sender: UserType,
        receiver_id,
        transport=None,
        registry: ConnectionRegistry | None = None,
    ) -> ServiceResult[dict]:
        """
        Record that ``sender`` is typing to ``receiver_id`` and notify the room.

        Returns:
            ServiceResult with {"room_name", "delivered"}
        """
        result = cls._resolve_receiver(sender, receiver_id)
        if not result.success:
            return result
        receiver = result.data

        now = timezone.now()
        PresenceService.upsert(
            sender,
            insert_defaults={"status": PresenceStatus.ONLINE},
            typing_target=receiver,
            typing_started_at=now,
            last_seen=now,
        )
        return cls._notify(sender, receiver, True, now, transport, registry)

    @classmethod
    def stop_typing(
        cls,
        sender: UserType,
        receiver_id,
        transport=None,
        registry: ConnectionRegistry | None = None,
    ) -> ServiceResult[dict]:
        """Clear the typing state of ``sender`` and notify the room."""
        result = cls._resolve_receiver(sender, receiver_id)
        if not result.success:
            return result
        receiver = result.data

        now = timezone.now()
        cls.clear_typing(sender)
        return cls._notify(sender, receiver, False, now, transport, registry)

    @classmethod
    def clear_typing(cls, user: UserType, target: UserType | None = None) -> int:
        """
        Clear the typing fields of ``user``.

        With ``target``, only clears them when the user is typing to that
        target. Returns the number of records updated (0 or 1).
        """
        queryset = PresenceRecord.objects.filter(user=user)
        if target is not None:
            queryset = queryset.filter(typing_target=target)
        return queryset.update(
            typing_target=None,
            typing_started_at=None,
            updated_at=timezone.now(),
        )

    @classmethod
    def _resolve_receiver(cls, sender, receiver_id) -> ServiceResult:
        receiver_pk = coerce_int_id(receiver_id)
        if receiver_pk is None:
            return ServiceResult.failure(
                "receiverId is required", error_code=ErrorCode.VALIDATION_ERROR
            )
        if receiver_pk == sender.id:
            return _self_target("You cannot type to yourself")

        receiver = User.objects.filter(pk=receiver_pk, is_active=True).first()
        if receiver is None:
            return _user_not_found()
        return ServiceResult.success(receiver)

    @classmethod
    def _notify(cls, sender, receiver, is_typing, now, transport, registry):
        room = room_for(sender.id, receiver.id)
        publish(
            transport or get_transport(),
            "emit_to_room",
            room,
            ChatEvent.USER_TYPING,
            {
                "userId": sender.id,
                "username": sender.display_name,
                "isTyping": is_typing,
                "timestamp": now.isoformat(),
            },
            exclude_user=sender.id,
        )

        if registry is not None:
            delivered = bool(registry.sessions_of(receiver.id))
        else:
            delivered = PresenceService.is_online(receiver.id)

        return ServiceResult.success({"room_name": room, "delivered": delivered})


class PresenceService(BaseService):
    """
    Database-backed presence tracking.

    One PresenceRecord per user. Writes are single statements (an upsert
    or a filtered UPDATE) so a heartbeat and a concurrent sweep never lose
    each other's update.

    Methods:
        connect / disconnect: Session lifecycle, called by ChatConsumer
        update_status: Explicit status change
        heartbeat: Refresh last_seen
        get_presence: Snapshot of one user
        get_online_users: Active records inside the staleness window
    """

    @classmethod
    def upsert(
        cls,
        user: UserType,
        insert_defaults: dict | None = None,
        **fields,
    ) -> None:
        """
        Insert or update the PresenceRecord of ``user`` in one statement.

        ``fields`` are written on insert and on conflict; ``insert_defaults``
        only on insert. ``last_seen`` must be part of either.
        """
        values = {**(insert_defaults or {}), **fields}
        values.setdefault("last_seen", timezone.now())
        PresenceRecord.objects.bulk_create(
            [PresenceRecord(user_id=user.id, **values)],
            update_conflicts=True,
            unique_fields=["user"],
            update_fields=[*fields, "updated_at"],
        )

    @classmethod
    def connect(
        cls,
        user: UserType,
        session_ref: str,
        first_session: bool = True,
        transport=None,
    ) -> ServiceResult[PresenceRecord]:
        """
        Mark ``user`` online for a new session.

        On the first session, broadcasts ``user_online`` to every other
        session.
        """
        now = timezone.now()
        cls.upsert(
            user,
            status=PresenceStatus.ONLINE,
            last_seen=now,
            active_session_ref=session_ref,
        )

        if first_session:
            cls.get_logger().info(f"User {user.id} is online")
            publish(
                transport or get_transport(),
                "broadcast",
                ChatEvent.USER_ONLINE,
                {
                    "userId": user.id,
                    "username": user.display_name,
                    "timestamp": now.isoformat(),
                },
                exclude_channel=session_ref,
            )

        return ServiceResult.success(PresenceRecord.objects.get(user=user))

    @classmethod
    def disconnect(
        cls,
        user: UserType,
        session_ref: str,
        last_session: bool = True,
        transport=None,
    ) -> ServiceResult[None]:
        """
        Handle a closed session.

        On the last session the record goes offline (typing and session
        ref cleared) and ``user_offline`` is broadcast. Otherwise only a
        session ref pointing at the closed session is cleared.
        """
        now = timezone.now()

        if not last_session:
            PresenceRecord.objects.filter(
                user=user, active_session_ref=session_ref
            ).update(active_session_ref=None, updated_at=now)
            return ServiceResult.success(None)

        PresenceRecord.objects.filter(user=user).update(
            status=PresenceStatus.OFFLINE,
            last_seen=now,
            active_session_ref=None,
            typing_target=None,
            typing_started_at=None,
            updated_at=now,
        )

        cls.get_logger().info(f"User {user.id} is offline")
        publish(
            transport or get_transport(),
            "broadcast",
            ChatEvent.USER_OFFLINE,
            {
                "userId": user.id,
                "username": user.display_name,
                "timestamp": now.isoformat(),
            },
        )
        return ServiceResult.success(None)

    @classmethod
    def update_status(
        cls,
        user: UserType,
        status: str,
        transport=None,
    ) -> ServiceResult[PresenceRecord]:
        """
        Set the presence status of ``user`` and broadcast the change.

        Going offline also clears the typing state.

        Error codes:
            VALIDATION_ERROR: Status is not online, away, busy or offline
        """
        if status not in PresenceStatus.values:
            return ServiceResult.failure(
                f"Invalid status: {status}",
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        now = timezone.now()
        fields = {"status": status, "last_seen": now}
        if status == PresenceStatus.OFFLINE:
            fields.update(typing_target=None, typing_started_at=None)
        cls.upsert(user, **fields)

        cls.get_logger().info(f"User {user.id} status changed to {status}")
        publish(
            transport or get_transport(),
            "broadcast",
            ChatEvent.USER_STATUS_CHANGED,
            {
                "userId": user.id,
                "username": user.display_name,
                "status": status,
                "timestamp": now.isoformat(),
            },
        )
        return ServiceResult.success(PresenceRecord.objects.get(user=user))

    @classmethod
    def heartbeat(cls, user: UserType) -> ServiceResult[PresenceRecord]:
        """
        Refresh ``last_seen`` without touching the status.

        A status the user chose (including offline) survives heartbeats; a
        swept user comes back online by reconnecting or calling
        update_status. Only a user without a record is inserted as online.
        """
        now = timezone.now()
        cls.upsert(
            user,
            insert_defaults={"status": PresenceStatus.ONLINE},
            last_seen=now,
        )
        return ServiceResult.success(PresenceRecord.objects.get(user=user))

    @classmethod
    def get_presence(cls, user_id) -> ServiceResult[dict]:
        """
        Presence snapshot of one user.

        A user without a record is reported offline with ``last_seen`` set
        to their join date. A record whose last_seen is outside the
        staleness window is reported offline even before the sweeper runs.

        Error codes:
            VALIDATION_ERROR: Malformed user id
            NOT_FOUND: User does not exist
        """
        user_pk = coerce_int_id(user_id)
        if user_pk is None:
            return ServiceResult.failure(
                "userId is required", error_code=ErrorCode.VALIDATION_ERROR
            )

        user = User.objects.select_related("profile").filter(pk=user_pk).first()
        if user is None:
            return _user_not_found()

        record = PresenceRecord.objects.filter(user=user).first()
        if record is None:
            return ServiceResult.success(
                {
                    "user_id": user.id,
                    "username": user.display_name,
                    "status": PresenceStatus.OFFLINE,
                    "last_seen": user.date_joined,
                    "is_typing": False,
                    "typing_to": None,
                }
            )

        status = record.status
        if status != PresenceStatus.OFFLINE and record.last_seen < cls._stale_cutoff():
            status = PresenceStatus.OFFLINE

        return ServiceResult.success(
            {
                "user_id": user.id,
                "username": user.display_name,
                "status": status,
                "last_seen": record.last_seen,
                "is_typing": record.is_typing,
                "typing_to": record.typing_target_id,
            }
        )

    @classmethod
    def get_online_users(cls):
        """Records of connected users (online, away, busy), newest first."""
        return (
            PresenceRecord.objects.filter(
                status__in=PresenceStatus.active(),
                last_seen__gte=cls._stale_cutoff(),
            )
            .select_related("user__profile")
            .order_by("-last_seen")
        )

    @classmethod
    def is_online(cls, user_id) -> bool:
        return cls.get_online_users().filter(user_id=user_id).exists()

    @staticmethod
    def _stale_cutoff():
        return timezone.now() - timedelta(
            seconds=presence_setting("STALE_WINDOW_SECONDS")
        )
