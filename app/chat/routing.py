"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - Chat session (messages, typing, presence)

Authentication:
    JWT token should be passed as query parameter: ?token=<jwt_access_token>
    (or an Authorization: Bearer header). JWTAuthMiddleware validates the
    token and attaches the user to the consumer's scope.

The patterns are built around a ConnectionRegistry so that config.asgi can
hand the same registry to every consumer instance.
"""

from django.urls import path

from chat import consumers
from chat.registry import ConnectionRegistry


def build_websocket_urlpatterns(registry: ConnectionRegistry) -> list:
    """Return the websocket URL patterns bound to ``registry``."""
    return [
        path(
            "ws/chat/",
            consumers.ChatConsumer.as_asgi(registry=registry),
        ),
    ]
