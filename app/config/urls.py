"""
Root URLs.

    /                       ReDoc
    /schema/, /api/schema/  OpenAPI schema
    /api/docs/              ReDoc (alias)
    /admin/                 Django admin
    /health/                Liveness of database, cache and channel layer
    /api/v1/auth/           register, token, token/refresh, me
    /api/v1/chat/           messages, conversations, read state, presence
    /api/v1/connections/    connection requests

The websocket endpoint (/ws/chat/) is routed in config.asgi.
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("chat/", include("chat.urls")),
    path("connections/", include("connections.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/schema/", SpectacularAPIView.as_view(), name="api-schema"),
    path("api/docs/", SpectacularRedocView.as_view(url_name="schema"), name="api-docs"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Chat admin"
admin.site.index_title = "Messages, presence and connections"
