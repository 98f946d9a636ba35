"""
Connection service layer.

ConnectionService owns the connection request lifecycle:

    send_request ──> pending ──respond("accept")──> accepted
                        └─────respond("reject")──> rejected

Either participant can remove a connection at any time, which frees the
pair for a new request.

Events (best effort, via chat.transport):
    connection_request_received  -> receiver's personal channel
    connection_request_responded -> requester's personal channel
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.utils import timezone

from chat.constants import ChatEvent, ErrorCode
from chat.transport import get_transport, publish
from connections.models import Connection, ConnectionStatus
from core.helpers import coerce_int_id
from core.services import BaseService, ServiceResult

User = get_user_model()

RESPOND_ACTIONS = {
    "accept": ConnectionStatus.ACCEPTED,
    "reject": ConnectionStatus.REJECTED,
}


class ConnectionService(BaseService):
    """Business logic for connection requests."""

    @classmethod
    def send_request(
        cls,
        requester,
        receiver_id,
        message: str = "",
        transport=None,
    ) -> ServiceResult[Connection]:
        """
        Send a connection request.

        Failures:
            VALIDATION_ERROR: receiver_id missing or malformed
            SELF_TARGET: requester and receiver are the same user
            NOT_FOUND: receiver does not exist or is inactive
            CONFLICT: a connection already exists in either direction
        """
        receiver_pk = coerce_int_id(receiver_id)
        if receiver_pk is None:
            return ServiceResult.failure(
                "receiverId is required", error_code=ErrorCode.VALIDATION_ERROR
            )
        if receiver_pk == requester.id:
            return ServiceResult.failure(
                "You cannot send a connection request to yourself",
                error_code=ErrorCode.SELF_TARGET,
            )

        receiver = User.objects.filter(pk=receiver_pk, is_active=True).first()
        if receiver is None:
            return ServiceResult.failure(
                "User not found", error_code=ErrorCode.NOT_FOUND
            )

        if Connection.objects.between(requester, receiver).exists():
            return ServiceResult.failure(
                "Connection request already exists",
                error_code=ErrorCode.CONFLICT,
            )

        try:
            with cls.atomic():
                connection = Connection.objects.create(
                    requester=requester,
                    receiver=receiver,
                    message=(message or "").strip(),
                )
        except IntegrityError:
            # Lost a race with a request in the other direction
            return ServiceResult.failure(
                "Connection request already exists",
                error_code=ErrorCode.CONFLICT,
            )

        cls.get_logger().info(
            f"Connection request {connection.id}: {requester.id} -> {receiver.id}"
        )
        publish(
            transport or get_transport(),
            "emit_to_user",
            receiver.id,
            ChatEvent.CONNECTION_REQUEST_RECEIVED,
            {
                "connectionId": connection.id,
                "requesterId": requester.id,
                "requesterUsername": requester.display_name,
                "message": connection.message,
                "timestamp": connection.created_at.isoformat(),
            },
        )
        return ServiceResult.success(connection)

    @classmethod
    def respond(
        cls,
        user,
        connection_id,
        action: str,
        transport=None,
    ) -> ServiceResult[Connection]:
        """
        Accept or reject a pending request addressed to ``user``.

        Failures:
            VALIDATION_ERROR: action is not "accept" or "reject"
            NOT_FOUND: connection does not exist
            FORBIDDEN: user is not the receiver
            CONFLICT: request is no longer pending
        """
        new_status = RESPOND_ACTIONS.get(action)
        if new_status is None:
            return ServiceResult.failure(
                'Action must be "accept" or "reject"',
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        connection = (
            Connection.objects.select_related("requester", "receiver")
            .filter(pk=coerce_int_id(connection_id))
            .first()
        )
        if connection is None:
            return ServiceResult.failure(
                "Connection request not found", error_code=ErrorCode.NOT_FOUND
            )
        if connection.receiver_id != user.id:
            return ServiceResult.failure(
                "Only the receiver can respond to this request",
                error_code=ErrorCode.FORBIDDEN,
            )

        # Conditional update so two concurrent responses cannot both win
        updated = Connection.objects.filter(
            pk=connection.pk, status=ConnectionStatus.PENDING
        ).update(status=new_status, updated_at=timezone.now())
        if not updated:
            return ServiceResult.failure(
                "Connection request has already been handled",
                error_code=ErrorCode.CONFLICT,
            )
        connection.refresh_from_db()

        cls.get_logger().info(
            f"Connection {connection.id} {new_status} by user {user.id}"
        )
        publish(
            transport or get_transport(),
            "emit_to_user",
            connection.requester_id,
            ChatEvent.CONNECTION_REQUEST_RESPONDED,
            {
                "connectionId": connection.id,
                "status": connection.status,
                "responderId": user.id,
                "responderUsername": user.display_name,
                "timestamp": connection.updated_at.isoformat(),
            },
        )
        return ServiceResult.success(connection)

    @classmethod
    def remove(cls, user, connection_id) -> ServiceResult[None]:
        """
        Delete a connection (any status). Only a participant may remove it.

        Failures:
            NOT_FOUND: connection does not exist
            FORBIDDEN: user is not a participant
        """
        connection = Connection.objects.filter(pk=coerce_int_id(connection_id)).first()
        if connection is None:
            return ServiceResult.failure(
                "Connection not found", error_code=ErrorCode.NOT_FOUND
            )
        if not connection.involves(user):
            return ServiceResult.failure(
                "You can only remove your own connections",
                error_code=ErrorCode.FORBIDDEN,
            )

        connection.delete()
        cls.get_logger().info(f"Connection {connection_id} removed by user {user.id}")
        return ServiceResult.success(None)

    @classmethod
    def list_connections(cls, user):
        """Accepted connections of ``user``, most recently updated first."""
        return (
            Connection.objects.involving(user)
            .accepted()
            .select_related("requester__profile", "receiver__profile")
            .order_by("-updated_at")
        )

    @classmethod
    def list_pending(cls, user):
        """Pending requests waiting for ``user`` to respond."""
        return (
            Connection.objects.filter(receiver=user)
            .pending()
            .select_related("requester__profile", "receiver__profile")
            .order_by("-created_at")
        )

    @classmethod
    def list_sent(cls, user):
        """Pending requests ``user`` has sent."""
        return (
            Connection.objects.filter(requester=user)
            .pending()
            .select_related("requester__profile", "receiver__profile")
            .order_by("-created_at")
        )

    @classmethod
    def are_connected(cls, user_a, user_b) -> bool:
        """True if an accepted connection exists between the two users."""
        return Connection.objects.between(user_a, user_b).accepted().exists()
