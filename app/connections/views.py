"""
API views for connection requests.

URL Structure:
    /api/v1/connections/                 GET (accepted), POST (send request)
    /api/v1/connections/pending/         GET (requests waiting for me)
    /api/v1/connections/sent/            GET (requests I sent)
    /api/v1/connections/{id}/respond/    PUT {"action": "accept" | "reject"}
    /api/v1/connections/{id}/            DELETE

All business rules live in ConnectionService; views only parse input,
paginate and map failures to HTTP statuses.
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.pagination import ConnectionPagination
from connections.serializers import (
    ConnectionRequestSerializer,
    ConnectionRespondSerializer,
    ConnectionSerializer,
)
from connections.services import ConnectionService
from core.responses import service_error_response


class ConnectionListCreateView(generics.ListAPIView):
    """
    GET  /api/v1/connections/  - accepted connections
    POST /api/v1/connections/  - send a connection request
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ConnectionSerializer
    pagination_class = ConnectionPagination

    def get_queryset(self):
        return ConnectionService.list_connections(self.request.user)

    @extend_schema(
        operation_id="list_connections",
        summary="List accepted connections",
        tags=["Connections"],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        operation_id="send_connection_request",
        summary="Send connection request",
        request=ConnectionRequestSerializer,
        responses={
            201: ConnectionSerializer,
            400: OpenApiResponse(description="Invalid receiver or self request"),
            404: OpenApiResponse(description="Receiver not found"),
            409: OpenApiResponse(description="Connection already exists"),
        },
        tags=["Connections"],
    )
    def post(self, request):
        serializer = ConnectionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ConnectionService.send_request(
            requester=request.user,
            receiver_id=serializer.validated_data["receiver_id"],
            message=serializer.validated_data["message"],
        )
        if not result.success:
            return service_error_response(result)

        return Response(
            ConnectionSerializer(result.data).data, status=status.HTTP_201_CREATED
        )


class PendingConnectionListView(generics.ListAPIView):
    """GET /api/v1/connections/pending/ - requests waiting for my answer."""

    permission_classes = [IsAuthenticated]
    serializer_class = ConnectionSerializer
    pagination_class = ConnectionPagination

    def get_queryset(self):
        return ConnectionService.list_pending(self.request.user)

    @extend_schema(
        operation_id="list_pending_connections",
        summary="List received pending requests",
        tags=["Connections"],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class SentConnectionListView(generics.ListAPIView):
    """GET /api/v1/connections/sent/ - pending requests I sent."""

    permission_classes = [IsAuthenticated]
    serializer_class = ConnectionSerializer
    pagination_class = ConnectionPagination

    def get_queryset(self):
        return ConnectionService.list_sent(self.request.user)

    @extend_schema(
        operation_id="list_sent_connections",
        summary="List sent pending requests",
        tags=["Connections"],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class ConnectionRespondView(APIView):
    """PUT /api/v1/connections/{id}/respond/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="respond_connection_request",
        summary="Accept or reject a request",
        request=ConnectionRespondSerializer,
        responses={
            200: ConnectionSerializer,
            403: OpenApiResponse(description="Not the receiver of the request"),
            404: OpenApiResponse(description="Request not found"),
            409: OpenApiResponse(description="Request already handled"),
        },
        tags=["Connections"],
    )
    def put(self, request, connection_id):
        serializer = ConnectionRespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ConnectionService.respond(
            user=request.user,
            connection_id=connection_id,
            action=serializer.validated_data["action"],
        )
        if not result.success:
            return service_error_response(result)

        return Response(ConnectionSerializer(result.data).data)


class ConnectionDetailView(APIView):
    """DELETE /api/v1/connections/{id}/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="remove_connection",
        summary="Remove a connection",
        responses={
            204: OpenApiResponse(description="Connection removed"),
            403: OpenApiResponse(description="Not a participant"),
            404: OpenApiResponse(description="Connection not found"),
        },
        tags=["Connections"],
    )
    def delete(self, request, connection_id):
        result = ConnectionService.remove(request.user, connection_id)
        if not result.success:
            return service_error_response(result)

        return Response(status=status.HTTP_204_NO_CONTENT)
