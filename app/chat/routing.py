"""
WebSocket URL routing for the chat application.

This module defines the URL patterns for WebSocket connections,
mapping paths to their corresponding consumers.

URL Patterns:
    ws/chat/<chat_id>/ - Live view of a specific chat
    ws/inbox/          - Events addressed to the connected user

Authentication:
    JWT token should be passed as query parameter: ?token=<jwt_access_token>
    The JWTAuthMiddleware will validate the token and attach the user
    to the consumer's scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path(
        "ws/chat/<int:chat_id>/",
        consumers.ChatConsumer.as_asgi(),
    ),
    path(
        "ws/inbox/",
        consumers.InboxConsumer.as_asgi(),
    ),
]
