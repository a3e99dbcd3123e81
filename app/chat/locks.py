"""
Concurrency control for the chat aggregate.

Every mutation of a chat (append, edit, delete, roster change, read state)
runs inside transaction.atomic() and starts by locking the chat row with
SELECT ... FOR UPDATE. Writers to the same chat are serialized; writers to
different chats never wait on each other.

Derived fields are updated with F() expressions against the locked row, so
a caller holding a stale Chat instance cannot overwrite newer state.

Usage:
    from chat.locks import bump_version, lock_chat, require_participant

    with transaction.atomic():
        chat = lock_chat(chat_id)                    # NotFoundError
        participant = require_participant(chat, user)  # PermissionDeniedError
        ...
        bump_version(chat)

Note:
    These helpers raise domain exceptions; service methods decorated with
    core.services.storage_operation turn them into failure results after
    the transaction has rolled back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db.models import F
from django.utils import timezone

from core.exceptions import ErrorCode, NotFoundError, PermissionDeniedError
from chat.models import Chat, ChatParticipant

if TYPE_CHECKING:
    from typing import Any


def lock_chat(chat_id: Any) -> Chat:
    """
    Lock a chat row for the rest of the current transaction.

    Returns:
        The freshly read, locked Chat instance

    Raises:
        NotFoundError: If the chat doesn't exist
    """
    chat = Chat.objects.select_for_update().filter(pk=chat_id).first()
    if chat is None:
        raise NotFoundError(
            f"Chat {chat_id} not found",
            details={"chat_id": str(chat_id)},
        )
    return chat


def require_participant(chat: Chat, user: Any) -> ChatParticipant:
    """
    Get the roster entry of a user.

    Raises:
        PermissionDeniedError: NOT_PARTICIPANT if the user is not on the roster
    """
    participant = chat.participants.filter(user=user).first()
    if participant is None:
        raise PermissionDeniedError(
            "You are not a participant in this chat",
            error_code=ErrorCode.NOT_PARTICIPANT,
        )
    return participant


def bump_version(chat: Chat, **fields: Any) -> None:
    """
    Increment the chat version and apply derived field updates.

    Must be called while the chat row is locked. Refreshes the given
    instance so callers see the stored values.

    Example:
        bump_version(chat, is_active=False)
        bump_version(chat, message_count=F("message_count") + 1)
    """
    Chat.objects.filter(pk=chat.pk).update(
        version=F("version") + 1,
        updated_at=timezone.now(),
        **fields,
    )
    chat.refresh_from_db(
        fields=["version", "updated_at", "last_message", "last_message_at",
                "message_count", "is_active"],
    )
