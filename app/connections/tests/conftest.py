"""
Fixtures for connection tests.
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.tests.transports import RecordingTransport


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def requester(db):
    return UserFactory(username="requester")


@pytest.fixture
def receiver(db):
    return UserFactory(username="receiver")


@pytest.fixture
def client_for():
    """Return an APIClient authenticated as the given user."""

    def _client(user):
        client = APIClient()
        client.credentials(
            HTTP_AUTHORIZATION=f"Bearer {RefreshToken.for_user(user).access_token}"
        )
        return client

    return _client
