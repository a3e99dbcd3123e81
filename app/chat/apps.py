"""
Chat application configuration.

This app provides the chat system with:
- Direct (1:1) chats, one per user pair
- Group chats with admin/member roles
- Append-only message log with soft deletion
- Read receipts and unread counts
- Real-time fan-out over Channels
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
