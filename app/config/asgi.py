"""
ASGI entry point (uvicorn config.asgi:application).

    http       Django
    websocket  origin check -> JWTAuthMiddleware -> ChatConsumer (/ws/chat/)
    lifespan   RegistryLifespan: starts the presence sweeper, clears the
               registry on shutdown

The process owns a single ConnectionRegistry, shared by every consumer.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Populates the app registry before chat modules import models
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.registry import ConnectionRegistry, RegistryLifespan  # noqa: E402
from chat.routing import build_websocket_urlpatterns  # noqa: E402

connection_registry = ConnectionRegistry()

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(build_websocket_urlpatterns(connection_registry)))
        ),
        "lifespan": RegistryLifespan(connection_registry),
    }
)
