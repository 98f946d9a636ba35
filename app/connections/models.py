"""
Connection model.

A Connection is a request from one user to another. It starts pending and
is accepted or rejected by the receiver. There is at most one Connection
per unordered pair of users, whoever sent it.
"""

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.db.models.functions import Greatest, Least

from core.models import BaseModel


class ConnectionStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


class ConnectionQuerySet(models.QuerySet):
    """Query helpers that treat a connection as an unordered pair."""

    def between(self, user_a, user_b):
        """Connections between two users, in either direction."""
        return self.filter(
            Q(requester=user_a, receiver=user_b) | Q(requester=user_b, receiver=user_a)
        )

    def involving(self, user):
        """Connections where ``user`` is either side."""
        return self.filter(Q(requester=user) | Q(receiver=user))

    def accepted(self):
        return self.filter(status=ConnectionStatus.ACCEPTED)

    def pending(self):
        return self.filter(status=ConnectionStatus.PENDING)


class Connection(BaseModel):
    """
    A connection request between two users.

    Fields:
        requester: User who sent the request
        receiver: User who may accept or reject it
        status: pending, accepted or rejected
        message: Optional note sent with the request

    Constraints:
        - requester != receiver
        - one row per unordered pair (least id, greatest id)
    """

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_connections",
        help_text="User who sent the request",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_connections",
        help_text="User who received the request",
    )
    status = models.CharField(
        max_length=20,
        choices=ConnectionStatus.choices,
        default=ConnectionStatus.PENDING,
        db_index=True,
    )
    message = models.CharField(
        max_length=500,
        blank=True,
        help_text="Optional note sent with the request",
    )

    objects = ConnectionQuerySet.as_manager()

    class Meta:
        db_table = "connections"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(requester=F("receiver")),
                name="connection_not_self",
            ),
            models.UniqueConstraint(
                Least("requester", "receiver"),
                Greatest("requester", "receiver"),
                name="unique_connection_pair",
            ),
        ]
        indexes = [
            models.Index(fields=["receiver", "status"], name="connections_receive_5b1f0e_idx"),
            models.Index(fields=["requester", "status"], name="connections_request_9c2d4a_idx"),
        ]

    def __str__(self):
        return f"{self.requester_id} -> {self.receiver_id} ({self.status})"

    def involves(self, user) -> bool:
        return user.id in (self.requester_id, self.receiver_id)

    def other_user(self, user):
        """Return the participant that is not ``user``."""
        return self.receiver if self.requester_id == user.id else self.requester
