"""
Real-time fan-out of chat mutations.

Services call ChatEventPublisher after a successful mutation. Events are
handed to Celery only once the surrounding transaction commits, and the
Celery task (chat.tasks.broadcast_event) pushes them to the channel-layer
group that WebSocket consumers subscribe to.

Delivery is best-effort and at-most-once: enqueue and delivery failures are
logged and never reach the caller, and a rolled back mutation publishes
nothing.

Event shape (sent to consumers as {"type": "chat.event", "event": ...}):
    {"chat_id": 12, "kind": "message.created", "payload": {...}}

Usage:
    from chat.constants import EVENT_KIND
    from chat.events import ChatEventPublisher, message_payload

    with transaction.atomic():
        message = Message.objects.create(...)
        ChatEventPublisher.publish(
            chat.pk, EVENT_KIND.MESSAGE_CREATED, message_payload(message)
        )
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction

from chat.constants import CHANNEL_GROUPS

if TYPE_CHECKING:
    from typing import Any

    from chat.models import ChatParticipant, Message

logger = logging.getLogger(__name__)


class ChatEventPublisher:
    """
    Publishes chat events to channel-layer groups after commit.

    Methods:
        publish: Event for everyone subscribed to a chat
        publish_to_user: Event for one user's inbox (all their sockets)
    """

    @classmethod
    def publish(cls, chat_id: int, kind: str, payload: dict[str, Any]) -> None:
        """
        Schedule an event for the chat's group.

        Nothing is enqueued if the surrounding transaction rolls back.
        Outside a transaction the event is enqueued immediately.
        """
        event = {"chat_id": chat_id, "kind": kind, "payload": payload}
        cls._schedule(CHANNEL_GROUPS.for_chat(chat_id), event)

    @classmethod
    def publish_to_user(
        cls,
        user_id: int,
        kind: str,
        payload: dict[str, Any],
        chat_id: int | None = None,
    ) -> None:
        """Schedule an event for a user's inbox group."""
        event = {"chat_id": chat_id, "kind": kind, "payload": payload}
        cls._schedule(CHANNEL_GROUPS.for_user(user_id), event)

    @classmethod
    def _schedule(cls, group: str, event: dict[str, Any]) -> None:
        if not getattr(settings, "CHAT_FANOUT_ENABLED", True):
            return
        transaction.on_commit(partial(cls._enqueue, group, event))

    @staticmethod
    def _enqueue(group: str, event: dict[str, Any]) -> None:
        """Hand the event to Celery; a broker outage must not fail the caller."""
        from chat.tasks import broadcast_event

        try:
            broadcast_event.delay(group, event)
        except Exception:
            logger.exception(f"Failed to enqueue {event['kind']} event for {group}")


# =============================================================================
# Payload builders
# =============================================================================


def _isoformat(value) -> str | None:
    return value.isoformat() if value else None


def message_payload(message: Message) -> dict[str, Any]:
    """
    JSON-safe representation of a message for live clients.

    Deleted messages carry the placeholder content.
    """
    sender = message.sender
    sender_data = None
    if sender is not None:
        profile = getattr(sender, "profile", None)
        sender_data = {
            "id": sender.pk,
            "username": profile.username if profile else "",
            "avatar": profile.avatar if profile else "",
        }

    return {
        "id": message.pk,
        "chat_id": message.chat_id,
        "sequence": message.sequence,
        "sender": sender_data,
        "content": message.get_display_content(),
        "message_type": message.message_type,
        "file_url": message.file_url or None,
        "is_edited": message.is_edited,
        "edited_at": _isoformat(message.edited_at),
        "is_deleted": message.is_deleted,
        "created_at": _isoformat(message.created_at),
    }


def participant_payload(participant: ChatParticipant) -> dict[str, Any]:
    """JSON-safe representation of a roster entry."""
    return {
        "user_id": participant.user_id,
        "role": participant.role,
        "joined_at": _isoformat(participant.joined_at),
        "is_muted": participant.is_muted,
    }
