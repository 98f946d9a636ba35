"""
URL configuration for the connections API.

All URLs are prefixed with /api/v1/connections/ in the main URL configuration.
"""

from django.urls import path

from connections.views import (
    ConnectionDetailView,
    ConnectionListCreateView,
    ConnectionRespondView,
    PendingConnectionListView,
    SentConnectionListView,
)

app_name = "connections"

urlpatterns = [
    path("", ConnectionListCreateView.as_view(), name="connection-list"),
    path("pending/", PendingConnectionListView.as_view(), name="connection-pending"),
    path("sent/", SentConnectionListView.as_view(), name="connection-sent"),
    path(
        "<int:connection_id>/respond/",
        ConnectionRespondView.as_view(),
        name="connection-respond",
    ),
    path("<int:connection_id>/", ConnectionDetailView.as_view(), name="connection-detail"),
]
