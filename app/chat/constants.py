"""
Constants and configuration for the chat module.

This module centralizes configuration values for:
- Message operations (content limits, paging)
- Real-time event kinds and channel-layer group names

Import example:
    from chat.constants import MESSAGE_CONFIG, EVENT_KIND
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_CONTENT_LENGTH: Final[int] = 10000  # Characters
    MAX_CLIENT_MESSAGE_ID_LENGTH: Final[int] = 64

    # Paging of a chat's message log (latest page first)
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100

    DELETED_PLACEHOLDER: Final[str] = "[Message deleted]"


# =============================================================================
# Real-time Events
# =============================================================================


class EVENT_KIND:
    """Kinds of events published to chat and inbox groups."""

    CHAT_CREATED: Final[str] = "chat.created"
    MESSAGE_CREATED: Final[str] = "message.created"
    MESSAGE_EDITED: Final[str] = "message.edited"
    MESSAGE_DELETED: Final[str] = "message.deleted"
    MESSAGES_READ: Final[str] = "messages.read"
    PARTICIPANT_ADDED: Final[str] = "participant.added"
    PARTICIPANT_REMOVED: Final[str] = "participant.removed"
    PARTICIPANT_UPDATED: Final[str] = "participant.updated"
    DIRECT_MESSAGE_CREATED: Final[str] = "direct_message.created"
    TYPING: Final[str] = "typing"


class CHANNEL_GROUPS:
    """Channel-layer group name templates."""

    CHAT: Final[str] = "chat_{chat_id}"
    USER: Final[str] = "user_{user_id}"

    @staticmethod
    def for_chat(chat_id) -> str:
        return CHANNEL_GROUPS.CHAT.format(chat_id=chat_id)

    @staticmethod
    def for_user(user_id) -> str:
        return CHANNEL_GROUPS.USER.format(user_id=user_id)
