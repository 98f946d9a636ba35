"""
Chat models.

This module defines the two persisted chat entities:
- Message: A direct message from one user to another
- PresenceRecord: One row per user with connectivity and typing state

Conversation rooms are not stored. They are derived from the two user ids
by chat.rooms.room_for.

Message lifecycle:
    created (is_read=False) ──mark_read──> read (is_read=True, read_at set)
    Only the sender may delete a message (hard delete).

Presence lifecycle:
    connect / heartbeat / status change ──> upsert (last_seen refreshed)
    sweeper ──> offline when last_seen is older than the staleness window
"""

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class MessageType(models.TextChoices):
    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    FILE = "file", "File"
    LINK = "link", "Link"


class PresenceStatus(models.TextChoices):
    ONLINE = "online", "Online"
    AWAY = "away", "Away"
    BUSY = "busy", "Busy"
    OFFLINE = "offline", "Offline"

    @classmethod
    def active(cls) -> list[str]:
        """Statuses that count as "connected" for listings and the sweeper."""
        return [cls.ONLINE, cls.AWAY, cls.BUSY]


class MessageQuerySet(models.QuerySet):
    def between(self, user_a, user_b):
        """Messages exchanged by two users, in either direction."""
        return self.filter(
            Q(sender=user_a, receiver=user_b) | Q(sender=user_b, receiver=user_a)
        )

    def involving(self, user):
        return self.filter(Q(sender=user) | Q(receiver=user))

    def unread_for(self, user):
        """Unread messages addressed to ``user``."""
        return self.filter(receiver=user, is_read=False)


class Message(UUIDPrimaryKeyMixin, models.Model):
    """
    A direct message.

    Fields:
        id: UUID, handed to clients and used as the history cursor
        sender / receiver: The two distinct participants
        content: Non-empty text (a URL for image/file/link messages)
        message_type: text, image, file or link
        is_read / read_at: Set together by the read-receipt operation
        created_at: Insert time, the only ordering signal between messages
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_messages",
    )
    content = models.TextField()
    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
    )
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = MessageQuerySet.as_manager()

    class Meta:
        db_table = "messages"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(sender=F("receiver")),
                name="message_not_self",
            ),
        ]
        indexes = [
            models.Index(
                fields=["sender", "receiver", "created_at"],
                name="messages_pair_created_idx",
            ),
            models.Index(
                fields=["receiver", "is_read"],
                name="messages_unread_idx",
            ),
        ]

    def __str__(self):
        return f"Message {self.id} ({self.sender_id} -> {self.receiver_id})"


class PresenceRecord(UUIDPrimaryKeyMixin, BaseModel):
    """
    Last known connectivity of a user.

    Fields:
        user: One record per user
        status: online, away, busy or offline
        last_seen: Refreshed by connect, heartbeat and status changes
        active_session_ref: Channel name of the most recent session
        typing_target: User this user is typing to, if any
        typing_started_at: When typing started

    Invariant:
        typing_target and typing_started_at are both set or both null.
        Every write in chat.services and chat.sweeper sets or clears them
        together. There is no check constraint because deleting the target
        user nulls typing_target on its own.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="presence",
    )
    status = models.CharField(
        max_length=10,
        choices=PresenceStatus.choices,
        default=PresenceStatus.OFFLINE,
    )
    last_seen = models.DateTimeField(db_index=True)
    active_session_ref = models.CharField(max_length=255, null=True, blank=True)
    typing_target = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    typing_started_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "user_statuses"
        ordering = ["-last_seen"]
        indexes = [
            models.Index(fields=["status", "last_seen"], name="presence_status_seen_idx"),
        ]

    def __str__(self):
        return f"{self.user_id}: {self.status}"

    @property
    def is_typing(self) -> bool:
        return self.typing_target_id is not None
