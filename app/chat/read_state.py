"""
Read state of chat participants.

Two mechanisms track what a participant has seen:
    - last_read_at on ChatParticipant: watermark used for unread counts
    - MessageReadReceipt rows: per-message readBy markers

Unread count of a participant:
    messages of the chat created after last_read_at, not sent by the
    participant and not deleted.

Usage:
    from chat.read_state import ReadStateService

    result = ReadStateService.mark_read(chat_id, user)
    if result.success:
        state = result.data  # ReadState(marked_count, unread_count, last_read_at)

    count = ReadStateService.get_unread_count(chat_id, user)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from django.db import transaction
from django.db.models import Count, IntegerField, OuterRef, Subquery
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.services import BaseService, ServiceResult, storage_operation

from chat.constants import EVENT_KIND
from chat.events import ChatEventPublisher
from chat.locks import bump_version, lock_chat, require_participant
from chat.models import ChatParticipant, Message, MessageReadReceipt

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User
    from chat.models import Chat


@dataclass(frozen=True)
class ReadState:
    """Outcome of marking a chat as read."""

    marked_count: int
    unread_count: int
    last_read_at: datetime


def _unread_messages(chat_id, user, last_read_at) -> QuerySet[Message]:
    return (
        Message.objects.filter(
            chat_id=chat_id,
            is_deleted=False,
            created_at__gt=last_read_at,
        )
        .exclude(sender=user)
    )


def annotate_unread_counts(queryset: QuerySet[Chat], user: User) -> QuerySet[Chat]:
    """
    Annotate each chat in the queryset with unread_count for the user.

    Chats the user is not on get 0.
    """
    last_read = ChatParticipant.objects.filter(
        chat=OuterRef("pk"), user=user
    ).values("last_read_at")[:1]

    unread = (
        Message.objects.filter(
            chat=OuterRef("pk"),
            is_deleted=False,
            created_at__gt=OuterRef("viewer_last_read_at"),
        )
        .exclude(sender=user)
        .order_by()
        .values("chat")
        .annotate(count=Count("pk"))
        .values("count")
    )

    return queryset.annotate(viewer_last_read_at=Subquery(last_read)).annotate(
        unread_count=Coalesce(Subquery(unread, output_field=IntegerField()), 0)
    )


class ReadStateService(BaseService):
    """
    Service for participant read state.

    Methods:
        mark_read: Add read receipts and move the watermark to now
        get_unread_count: Unread messages of a participant
    """

    @classmethod
    @storage_operation
    def mark_read(
        cls,
        chat_id: int,
        user: User,
        message_ids: list[int] | None = None,
    ) -> ServiceResult[ReadState]:
        """
        Mark messages of a chat as read by a user.

        Adds a read receipt for every given message of this chat (all
        messages if message_ids is empty or None) that the user has not
        receipted yet, and sets the participant's last_read_at to now.
        Ids of messages in other chats are ignored.

        Calling it again is harmless: already receipted messages are skipped.

        Returns:
            ServiceResult with ReadState; unread_count is read back from the
            database after the write commits

        Error codes:
            NOT_FOUND: Chat does not exist
            NOT_PARTICIPANT: User is not on the roster
        """
        with transaction.atomic():
            chat = lock_chat(chat_id)
            participant = require_participant(chat, user)

            now = timezone.now()
            pending = Message.objects.filter(chat=chat).exclude(read_receipts__user=user)
            if message_ids:
                pending = pending.filter(pk__in=message_ids)
            pending_ids = list(pending.values_list("pk", flat=True))

            MessageReadReceipt.objects.bulk_create(
                [
                    MessageReadReceipt(message_id=message_id, user=user, read_at=now)
                    for message_id in pending_ids
                ],
                ignore_conflicts=True,
            )

            participant.last_read_at = now
            participant.save(update_fields=["last_read_at", "updated_at"])
            bump_version(chat)

            ChatEventPublisher.publish(
                chat.pk,
                EVENT_KIND.MESSAGES_READ,
                {
                    "user_id": user.pk,
                    "message_ids": pending_ids,
                    "last_read_at": now.isoformat(),
                },
            )

        unread_count = _unread_messages(chat.pk, user, now).count()

        cls.get_logger().debug(
            f"User {user.pk} marked {len(pending_ids)} message(s) read in chat {chat.pk}"
        )
        return ServiceResult.success(
            ReadState(
                marked_count=len(pending_ids),
                unread_count=unread_count,
                last_read_at=now,
            )
        )

    @classmethod
    def get_unread_count(cls, chat_id: int, user: User) -> int:
        """
        Count unread messages of a chat for a user.

        Returns 0 if the chat doesn't exist or the user is not on its roster.
        """
        participant = ChatParticipant.objects.filter(chat_id=chat_id, user=user).first()
        if participant is None:
            return 0
        return _unread_messages(chat_id, user, participant.last_read_at).count()
