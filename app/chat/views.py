"""
API views for chat.

URL Structure (prefixed with /api/v1/chat/):
    Messages:
        /messages/                       POST    send a message
        /messages/{message_id}/          DELETE  delete own message
        /conversations/                  GET     latest message per peer
        /conversations/{other_user_id}/  GET     history (page, limit, before)
        /read/{other_user_id}/           PUT     mark messages from peer as read
        /unread-count/                   GET

    Presence:
        /presence/                       PUT     set own status
        /presence/online/                GET     online users
        /presence/typing/                PUT     start/stop typing
        /presence/heartbeat/             POST
        /presence/{user_id}/             GET     presence snapshot

Business rules live in chat.services; failures are mapped to HTTP statuses
by core.responses.service_error_response.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.pagination import OnlineUserPagination
from chat.serializers import (
    ConversationPageSerializer,
    ConversationSummarySerializer,
    MessageCreateSerializer,
    MessageSerializer,
    OnlineUserSerializer,
    PresenceSerializer,
    PresenceStatusSerializer,
    ReadReceiptSerializer,
    TypingResultSerializer,
    TypingSerializer,
)
from chat.services import MessageService, PresenceService, TypingService
from core.responses import service_error_response

# =============================================================================
# Messages
# =============================================================================


class MessageCreateView(APIView):
    """
    Send a direct message.

    POST /api/v1/chat/messages/

    Payload:
        receiver_id: Receiving user
        content: Message text (or URL for image/file/link)
        message_type: "text" | "image" | "file" | "link" (default "text")
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="send_message",
        summary="Send message",
        description=(
            "Send a direct message to a connected user. The message is pushed to "
            "the conversation room and to the receiver's sessions."
        ),
        request=MessageCreateSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Invalid content or self message"),
            403: OpenApiResponse(description="Users are not connected"),
            404: OpenApiResponse(description="Receiver not found"),
        },
        tags=["Chat - Messages"],
    )
    def post(self, request):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MessageService.send_message(
            sender=request.user,
            receiver_id=serializer.validated_data["receiver_id"],
            content=serializer.validated_data["content"],
            message_type=serializer.validated_data["message_type"],
        )
        if not result.success:
            return service_error_response(result)

        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)


class MessageDetailView(APIView):
    """DELETE /api/v1/chat/messages/{message_id}/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        responses={
            204: OpenApiResponse(description="Message deleted"),
            403: OpenApiResponse(description="Not the sender"),
            404: OpenApiResponse(description="Message not found"),
        },
        tags=["Chat - Messages"],
    )
    def delete(self, request, message_id):
        result = MessageService.delete_message(request.user, message_id)
        if not result.success:
            return service_error_response(result)

        return Response(status=status.HTTP_204_NO_CONTENT)


class ConversationListView(APIView):
    """
    List conversations.

    GET /api/v1/chat/conversations/?page=1&limit=20
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        description="Latest message exchanged with each peer, newest first.",
        parameters=[
            OpenApiParameter(name="page", type=OpenApiTypes.INT, required=False),
            OpenApiParameter(name="limit", type=OpenApiTypes.INT, required=False),
        ],
        responses={200: ConversationSummarySerializer(many=True)},
        tags=["Chat - Messages"],
    )
    def get(self, request):
        result = MessageService.get_conversations(
            request.user,
            page=request.query_params.get("page", 1),
            limit=request.query_params.get("limit"),
        )
        if not result.success:
            return service_error_response(result)

        conversations = result.data
        return Response(
            {
                "conversations": ConversationSummarySerializer(
                    conversations.conversations, many=True
                ).data,
                "total": conversations.total,
                "page": conversations.page,
                "limit": conversations.limit,
                "total_pages": conversations.total_pages,
            }
        )


class ConversationDetailView(APIView):
    """
    Conversation history with another user.

    GET /api/v1/chat/conversations/{other_user_id}/?page=1&limit=50
    GET /api/v1/chat/conversations/{other_user_id}/?before=<message_id>&limit=50
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_conversation",
        summary="Get conversation history",
        description=(
            "Messages between the current user and another user, oldest first. "
            "When `before` is given it takes precedence over `page`."
        ),
        parameters=[
            OpenApiParameter(name="page", type=OpenApiTypes.INT, required=False),
            OpenApiParameter(name="limit", type=OpenApiTypes.INT, required=False),
            OpenApiParameter(
                name="before",
                type=OpenApiTypes.UUID,
                required=False,
                description="Return messages older than this message",
            ),
        ],
        responses={
            200: ConversationPageSerializer,
            400: OpenApiResponse(description="Invalid cursor or self conversation"),
            404: OpenApiResponse(description="User not found"),
        },
        tags=["Chat - Messages"],
    )
    def get(self, request, other_user_id):
        result = MessageService.get_conversation(
            request.user,
            other_user_id,
            page=request.query_params.get("page", 1),
            limit=request.query_params.get("limit"),
            before=request.query_params.get("before"),
        )
        if not result.success:
            return service_error_response(result)

        return Response(ConversationPageSerializer(result.data).data)


class MarkReadView(APIView):
    """PUT /api/v1/chat/read/{other_user_id}/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="mark_messages_read",
        summary="Mark messages as read",
        request=None,
        responses={
            200: ReadReceiptSerializer,
            400: OpenApiResponse(description="Self target"),
            404: OpenApiResponse(description="User not found"),
        },
        tags=["Chat - Messages"],
    )
    def put(self, request, other_user_id):
        result = MessageService.mark_read(request.user, other_user_id)
        if not result.success:
            return service_error_response(result)

        return Response(ReadReceiptSerializer(result.data).data)


class UnreadCountView(APIView):
    """GET /api/v1/chat/unread-count/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_unread_count",
        summary="Get unread message count",
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Messages"],
    )
    def get(self, request):
        result = MessageService.get_unread_count(request.user)
        return Response({"unread_count": result.data})


# =============================================================================
# Presence
# =============================================================================


class PresenceView(APIView):
    """
    Manage current user's presence.

    PUT /api/v1/chat/presence/

    Payload:
        status: "online" | "away" | "busy" | "offline"
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="set_presence",
        summary="Set presence status",
        description=(
            "Set the current user's presence status and broadcast the change to "
            "connected sessions."
        ),
        request=PresenceStatusSerializer,
        responses={
            200: OpenApiResponse(
                response=PresenceSerializer,
                description="Presence status updated successfully",
            ),
            400: OpenApiResponse(description="Invalid status value"),
        },
        tags=["Chat - Presence"],
    )
    def put(self, request):
        """Set current user's presence status."""
        serializer = PresenceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PresenceService.update_status(
            request.user, serializer.validated_data["status"]
        )
        if not result.success:
            return service_error_response(result)

        return _presence_response(request.user.id)


class UserPresenceView(APIView):
    """
    Get presence status for a specific user.

    GET /api/v1/chat/presence/{user_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_user_presence",
        summary="Get user presence",
        description=(
            "Current status and last seen timestamp of a user. Users who never "
            "connected are reported offline with their join date as last seen."
        ),
        responses={
            200: OpenApiResponse(
                response=PresenceSerializer,
                description="User's presence status",
            ),
            404: OpenApiResponse(description="User not found"),
        },
        tags=["Chat - Presence"],
    )
    def get(self, request, user_id):
        """Get presence for a specific user."""
        return _presence_response(user_id)


class OnlineUsersView(generics.ListAPIView):
    """
    List users currently online, away or busy.

    GET /api/v1/chat/presence/online/?page=1&limit=20
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OnlineUserSerializer
    pagination_class = OnlineUserPagination

    def get_queryset(self):
        return PresenceService.get_online_users()

    @extend_schema(
        operation_id="list_online_users",
        summary="List online users",
        tags=["Chat - Presence"],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class TypingView(APIView):
    """
    Start or stop typing toward another user.

    PUT /api/v1/chat/presence/typing/

    Payload:
        isTyping: bool
        otherUserId: Receiving user
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="set_typing",
        summary="Set typing status",
        request=TypingSerializer,
        responses={
            200: TypingResultSerializer,
            400: OpenApiResponse(description="Invalid payload or self target"),
            404: OpenApiResponse(description="User not found"),
        },
        tags=["Chat - Presence"],
    )
    def put(self, request):
        serializer = TypingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        operation = (
            TypingService.start_typing
            if serializer.validated_data["isTyping"]
            else TypingService.stop_typing
        )
        result = operation(request.user, serializer.validated_data["otherUserId"])
        if not result.success:
            return service_error_response(result)

        return Response(TypingResultSerializer(result.data).data)


class HeartbeatView(APIView):
    """
    Refresh presence.

    POST /api/v1/chat/presence/heartbeat/
        Keeps the user's last_seen inside the staleness window. Clients
        without a websocket should call this about once a minute.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="presence_heartbeat",
        summary="Presence heartbeat",
        request=None,
        responses={200: PresenceSerializer},
        tags=["Chat - Presence"],
    )
    def post(self, request):
        PresenceService.heartbeat(request.user)
        return _presence_response(request.user.id)


def _presence_response(user_id) -> Response:
    result = PresenceService.get_presence(user_id)
    if not result.success:
        return service_error_response(result)
    return Response(PresenceSerializer(result.data).data)
