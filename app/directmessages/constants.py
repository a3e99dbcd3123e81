"""
Constants for the direct messages module.

Import example:
    from directmessages.constants import DIRECT_MESSAGE_CONFIG
"""

from typing import Final


class DIRECT_MESSAGE_CONFIG:
    """Configuration for direct message operations."""

    MAX_TEXT_LENGTH: Final[int] = 5000  # Characters

    # Messages scanned when building the recent conversations list;
    # overridden by settings.CHAT_RECENT_CONVERSATIONS_WINDOW
    RECENT_CONVERSATIONS_WINDOW: Final[int] = 100
