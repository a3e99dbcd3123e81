"""
URL configuration for the chat backend.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/chat/                  - Chat endpoints
        chats/                     - Chat list/create
        chats/{id}/                - Chat detail
        chats/{id}/read/           - Mark chat messages as read
        chats/{id}/leave/          - Leave chat
        chats/{id}/mute/           - Mute/unmute chat
        chats/{id}/participants/   - Participant list/add
        chats/{id}/participants/{user_id}/ - Participant role update/remove
        chats/{id}/messages/       - Message list/send
        chats/{id}/messages/{pk}/  - Message edit/delete
    /api/v1/dm/                    - Direct message endpoints
        conversation/{user_id}/    - Messages with a user
        send/                      - Send a message
        read/{sender_id}/          - Mark a sender's messages read
        unread/count/              - Unread count
        recent/                    - Recent conversations
        {message_id}/              - Delete own message

WebSocket routes live in chat.routing.

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Chat
    path("chat/", include("chat.urls")),
    # Direct messages
    path("dm/", include("directmessages.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Chat Admin"
admin.site.site_title = "Chat Admin Portal"
admin.site.index_title = "Chats and direct messages"
