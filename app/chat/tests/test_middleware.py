"""
Tests for JWTAuthMiddleware.

The middleware wraps a tiny ASGI app that records the scope it receives.
"""

import pytest
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.middleware import JWTAuthMiddleware

pytestmark = pytest.mark.django_db(transaction=True)


class ScopeRecorder:
    def __init__(self):
        self.scope = None

    async def __call__(self, scope, receive, send):
        self.scope = scope


async def authenticate(scope):
    inner = ScopeRecorder()
    await JWTAuthMiddleware(inner)(scope, None, None)
    return inner.scope["user"]


def websocket_scope(**extra):
    scope = {"type": "websocket", "path": "/ws/chat/", "query_string": b"", "headers": []}
    scope.update(extra)
    return scope


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def inactive_user(db):
    return UserFactory(is_active=False)


@pytest.fixture
def token(user):
    return str(RefreshToken.for_user(user).access_token)


class TestJWTAuthMiddleware:
    """Tests for JWTAuthMiddleware.__call__()."""

    async def test_query_string_token(self, user, token):
        scope = websocket_scope(query_string=f"token={token}".encode())

        assert (await authenticate(scope)).id == user.id

    async def test_authorization_header(self, user, token):
        scope = websocket_scope(headers=[(b"authorization", f"Bearer {token}".encode())])

        assert (await authenticate(scope)).id == user.id

    async def test_subprotocol(self, user, token):
        scope = websocket_scope(subprotocols=["jwt", token])

        assert (await authenticate(scope)).id == user.id

    async def test_no_token_is_anonymous(self, db):
        assert isinstance(await authenticate(websocket_scope()), AnonymousUser)

    async def test_invalid_token_is_anonymous(self, db):
        scope = websocket_scope(query_string=b"token=not-a-jwt")

        assert isinstance(await authenticate(scope), AnonymousUser)

    async def test_inactive_user_is_anonymous(self, inactive_user):
        token = str(RefreshToken.for_user(inactive_user).access_token)

        scope = websocket_scope(query_string=f"token={token}".encode())

        assert isinstance(await authenticate(scope), AnonymousUser)

    async def test_does_not_mutate_callers_scope(self, token):
        scope = websocket_scope(query_string=f"token={token}".encode())

        await authenticate(scope)

        assert "user" not in scope
