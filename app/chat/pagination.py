"""
Pagination classes for chat API.

This module provides pagination for the chat system:
- MessageCursorPagination: For a chat's message log (latest first)
- ChatListPagination: For chat lists (most recent activity first)

Design Decisions:
    - Messages are paged by sequence, which is unique per chat and never
      changes, so cursors stay stable while new messages are appended
    - Chat lists sort on a nullable timestamp, so they use limit/offset
    - Page sizes balanced for mobile performance
"""

from rest_framework.pagination import CursorPagination, LimitOffsetPagination

from chat.constants import MESSAGE_CONFIG


class MessageCursorPagination(CursorPagination):
    """
    Cursor pagination for message lists.

    The first page holds the latest messages; the "next" cursor walks back
    through history.

    Default: 50 messages per page
    Maximum: 100 messages per page

    Query parameters:
        cursor: Encoded cursor for position
        page_size: Number of messages (optional override)
    """

    page_size = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE
    max_page_size = MESSAGE_CONFIG.MAX_PAGE_SIZE
    page_size_query_param = "page_size"
    ordering = ("-sequence",)
    cursor_query_param = "cursor"


class ChatListPagination(LimitOffsetPagination):
    """
    Limit/offset pagination for chat lists.

    Default: 20 chats per page
    Maximum: 50 chats per page
    """

    default_limit = 20
    max_limit = 50
