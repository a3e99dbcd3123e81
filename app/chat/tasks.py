"""
Celery tasks for chat app.

This module defines async tasks for:
- Delivering chat events to channel-layer groups

Related files:
    - events.py: ChatEventPublisher (enqueues broadcast_event after commit)
    - consumers.py: ChatConsumer / InboxConsumer (receive "chat.event")

Usage:
    from chat.tasks import broadcast_event

    broadcast_event.delay("chat_12", {"chat_id": 12, "kind": "message.created", "payload": {...}})
"""

import logging

from asgiref.sync import async_to_sync
from celery import shared_task
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def broadcast_event(group: str, event: dict) -> bool:
    """
    Send a chat event to every socket subscribed to a group.

    Delivery is at-most-once: failures are logged and the task is not
    retried, so a client that misses an event refetches state over HTTP.

    Args:
        group: Channel-layer group name (chat_<id> or user_<id>)
        event: {"chat_id", "kind", "payload"}

    Returns:
        True if the event was handed to the channel layer
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning(f"No channel layer configured, dropping {event.get('kind')} for {group}")
        return False

    try:
        async_to_sync(channel_layer.group_send)(
            group,
            {"type": "chat.event", "event": event},
        )
    except Exception:
        logger.exception(f"Failed to broadcast {event.get('kind')} to {group}")
        return False

    logger.debug(f"Broadcast {event.get('kind')} to {group}")
    return True
