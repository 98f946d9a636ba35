"""
Tests for the connections API endpoints.

Endpoints:
    GET/POST /api/v1/connections/
    GET      /api/v1/connections/pending/
    GET      /api/v1/connections/sent/
    PUT      /api/v1/connections/{id}/respond/
    DELETE   /api/v1/connections/{id}/
"""

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from connections.models import Connection, ConnectionStatus
from connections.tests.factories import ConnectionFactory

LIST_URL = reverse("connections:connection-list")
PENDING_URL = reverse("connections:connection-pending")
SENT_URL = reverse("connections:connection-sent")


def respond_url(connection_id):
    return reverse("connections:connection-respond", kwargs={"connection_id": connection_id})


def detail_url(connection_id):
    return reverse("connections:connection-detail", kwargs={"connection_id": connection_id})


class TestConnectionListCreateView:
    """Tests for GET/POST /api/v1/connections/."""

    def test_requires_authentication(self, db):
        assert APIClient().get(LIST_URL).status_code == status.HTTP_401_UNAUTHORIZED

    def test_send_request(self, client_for, requester, receiver):
        response = client_for(requester).post(
            LIST_URL, {"receiver_id": receiver.id, "message": "hi"}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["status"] == "pending"
        assert response.data["receiver"]["id"] == receiver.id
        assert response.data["message"] == "hi"

    def test_duplicate_request_conflict(self, client_for, requester, receiver):
        ConnectionFactory(requester=receiver, receiver=requester)

        response = client_for(requester).post(
            LIST_URL, {"receiver_id": receiver.id}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "CONFLICT"

    def test_self_request_bad_request(self, client_for, requester):
        response = client_for(requester).post(
            LIST_URL, {"receiver_id": requester.id}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "SELF_TARGET"

    def test_list_accepted_paginated(self, client_for, requester, receiver):
        ConnectionFactory(requester=requester, receiver=receiver, accepted=True)
        ConnectionFactory(requester=requester)

        response = client_for(requester).get(LIST_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 1
        assert response.data["results"][0]["status"] == "accepted"


class TestPendingAndSentViews:
    """Tests for the pending and sent listings."""

    def test_pending_lists_requests_to_me(self, client_for, requester, receiver):
        ConnectionFactory(requester=requester, receiver=receiver)

        response = client_for(receiver).get(PENDING_URL)

        assert response.data["count"] == 1
        assert response.data["results"][0]["requester"]["id"] == requester.id

    def test_sent_lists_my_requests(self, client_for, requester, receiver):
        ConnectionFactory(requester=requester, receiver=receiver)

        assert client_for(requester).get(SENT_URL).data["count"] == 1
        assert client_for(receiver).get(SENT_URL).data["count"] == 0


class TestConnectionRespondView:
    """Tests for PUT /api/v1/connections/{id}/respond/."""

    def test_accept(self, client_for, requester, receiver):
        connection = ConnectionFactory(requester=requester, receiver=receiver)

        response = client_for(receiver).put(
            respond_url(connection.id), {"action": "accept"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "accepted"

    def test_requester_forbidden(self, client_for, requester, receiver):
        connection = ConnectionFactory(requester=requester, receiver=receiver)

        response = client_for(requester).put(
            respond_url(connection.id), {"action": "accept"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_action(self, client_for, requester, receiver):
        connection = ConnectionFactory(requester=requester, receiver=receiver)

        response = client_for(receiver).put(
            respond_url(connection.id), {"action": "maybe"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_already_handled_conflict(self, client_for, requester, receiver):
        connection = ConnectionFactory(requester=requester, receiver=receiver, rejected=True)

        response = client_for(receiver).put(
            respond_url(connection.id), {"action": "accept"}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        connection.refresh_from_db()
        assert connection.status == ConnectionStatus.REJECTED


class TestConnectionDetailView:
    """Tests for DELETE /api/v1/connections/{id}/."""

    def test_remove(self, client_for, requester, receiver):
        connection = ConnectionFactory(requester=requester, receiver=receiver, accepted=True)

        response = client_for(receiver).delete(detail_url(connection.id))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Connection.objects.exists()

    def test_unknown(self, client_for, requester):
        response = client_for(requester).delete(detail_url(999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND
