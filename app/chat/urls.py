"""
URL configuration for chat API.

URL Structure:
    Messages:
        /messages/                          POST
        /messages/{message_id}/             DELETE
        /conversations/                     GET
        /conversations/{other_user_id}/     GET
        /read/{other_user_id}/              PUT
        /unread-count/                      GET

    Presence:
        /presence/                          PUT
        /presence/online/                   GET
        /presence/typing/                   PUT
        /presence/heartbeat/                POST
        /presence/{user_id}/                GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import path

from chat.views import (
    ConversationDetailView,
    ConversationListView,
    HeartbeatView,
    MarkReadView,
    MessageCreateView,
    MessageDetailView,
    OnlineUsersView,
    PresenceView,
    TypingView,
    UnreadCountView,
    UserPresenceView,
)

app_name = "chat"

urlpatterns = [
    # Messages
    path("messages/", MessageCreateView.as_view(), name="message-create"),
    path(
        "messages/<uuid:message_id>/",
        MessageDetailView.as_view(),
        name="message-detail",
    ),
    path("conversations/", ConversationListView.as_view(), name="conversation-list"),
    path(
        "conversations/<int:other_user_id>/",
        ConversationDetailView.as_view(),
        name="conversation-detail",
    ),
    path("read/<int:other_user_id>/", MarkReadView.as_view(), name="mark-read"),
    path("unread-count/", UnreadCountView.as_view(), name="unread-count"),
    # Presence endpoints
    path("presence/", PresenceView.as_view(), name="presence"),
    path("presence/online/", OnlineUsersView.as_view(), name="presence-online"),
    path("presence/typing/", TypingView.as_view(), name="presence-typing"),
    path("presence/heartbeat/", HeartbeatView.as_view(), name="presence-heartbeat"),
    path("presence/<int:user_id>/", UserPresenceView.as_view(), name="presence-user"),
]
