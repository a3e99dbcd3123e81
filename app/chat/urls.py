"""
URL configuration for chat API.

URL Structure:
    Chats:
        /chats/                                  GET, POST
        /chats/{id}/                             GET
        /chats/{id}/read/                        POST
        /chats/{id}/leave/                       POST
        /chats/{id}/mute/                        POST

    Participants:
        /chats/{id}/participants/                GET, POST
        /chats/{id}/participants/{user_id}/      PATCH, DELETE

    Messages:
        /chats/{id}/messages/                    GET, POST
        /chats/{id}/messages/{pk}/               PATCH, DELETE

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import ChatViewSet, MessageViewSet, ParticipantViewSet

router = DefaultRouter()
router.register(r"chats", ChatViewSet, basename="chat")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    # Nested routes for participants
    path(
        "chats/<int:chat_pk>/participants/",
        ParticipantViewSet.as_view({"get": "list", "post": "create"}),
        name="chat-participant-list",
    ),
    path(
        "chats/<int:chat_pk>/participants/<int:user_id>/",
        ParticipantViewSet.as_view({"patch": "partial_update", "delete": "destroy"}),
        name="chat-participant-detail",
    ),
    # Nested routes for messages
    path(
        "chats/<int:chat_pk>/messages/",
        MessageViewSet.as_view({"get": "list", "post": "create"}),
        name="chat-message-list",
    ),
    path(
        "chats/<int:chat_pk>/messages/<int:pk>/",
        MessageViewSet.as_view({"patch": "partial_update", "delete": "destroy"}),
        name="chat-message-detail",
    ),
]
