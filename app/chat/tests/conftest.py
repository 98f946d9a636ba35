"""
Test configuration and fixtures for chat tests.

This module provides:
- transport / failing_transport: In-memory stand-ins for ChannelLayerTransport
- User fixtures (alice and bob are connected, carol is a stranger)
- API client helpers for authenticated requests

Usage:
    def test_example(alice, bob, transport):
        MessageService.send_message(alice, bob.id, "Hi", transport=transport)
        assert transport.events("new_message")
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.models import Message
from chat.tests.transports import FailingTransport, RecordingTransport
from connections.tests.factories import ConnectionFactory


# =============================================================================
# Transports
# =============================================================================


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def failing_transport():
    return FailingTransport()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return UserFactory(username="alice")


@pytest.fixture
def bob(db):
    return UserFactory(username="bob")


@pytest.fixture
def carol(db):
    """A user with no connection to alice or bob."""
    return UserFactory(username="carol")


@pytest.fixture
def connected(alice, bob):
    """Accepted connection between alice and bob."""
    return ConnectionFactory(requester=alice, receiver=bob, accepted=True)


# =============================================================================
# Helpers
# =============================================================================


@pytest.fixture
def set_created_at():
    """Overwrite a message's auto_now_add timestamp."""

    def _set(message, created_at):
        Message.objects.filter(pk=message.pk).update(created_at=created_at)
        message.refresh_from_db()
        return message

    return _set


# =============================================================================
# API Clients
# =============================================================================


def _client_for(user) -> APIClient:
    client = APIClient()
    token = RefreshToken.for_user(user).access_token
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


@pytest.fixture
def alice_client(alice):
    return _client_for(alice)


@pytest.fixture
def bob_client(bob):
    return _client_for(bob)
