"""
Direct message service layer.

Services:
    DirectMessageService: Send, read and delete 1:1 messages
    RecentConversationService: Latest message per counterpart with unread counts

New messages are pushed to the inbox group of both users (user_<id>) after
commit, through the same fan-out path as chat events.

Usage:
    from directmessages.services import DirectMessageService, RecentConversationService

    result = DirectMessageService.send(alice, bob.id, "hello")
    count = DirectMessageService.mark_as_read(bob, alice.id).data   # 1
    DirectMessageService.get_unread_count(bob)                      # 0

    conversations = RecentConversationService.get_recent_conversations(alice).data
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from core.exceptions import ErrorCode
from core.services import BaseService, ServiceResult, storage_operation

from chat.constants import EVENT_KIND
from chat.events import ChatEventPublisher
from directmessages.constants import DIRECT_MESSAGE_CONFIG
from directmessages.models import DirectMessage

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User


def _user_summary(user) -> dict:
    profile = getattr(user, "profile", None)
    return {
        "id": user.pk,
        "username": profile.username if profile else "",
        "avatar": profile.avatar if profile else "",
    }


def direct_message_payload(message: DirectMessage) -> dict:
    """JSON-safe representation of a direct message for live clients."""
    return {
        "id": message.pk,
        "from_user": _user_summary(message.from_user),
        "to_user": _user_summary(message.to_user),
        "text": message.text,
        "is_read": message.is_read,
        "created_at": message.created_at.isoformat(),
    }


@dataclass
class RecentConversation:
    """One entry of a user's recent conversations list."""

    counterpart: User
    last_message: DirectMessage
    unread_count: int


class DirectMessageService(BaseService):
    """
    Service for 1:1 direct messages.

    Methods:
        send: Send a message to another user
        get_conversation: Messages exchanged by two users, oldest first
        mark_as_read: Mark a sender's messages to the user as read
        get_unread_count: Unread messages addressed to the user
        soft_delete: Delete own message
    """

    @classmethod
    @storage_operation
    def send(cls, from_user: User, to_user_id: int, text: str) -> ServiceResult[DirectMessage]:
        """
        Send a direct message.

        The text is stored trimmed. The message starts unread.

        Error codes:
            NOT_FOUND: Recipient does not exist or is inactive
            VALIDATION_ERROR: Empty or oversized text, or sending to yourself
        """
        text = text.strip() if text else ""
        if not text:
            return ServiceResult.failure(
                "Recipient and message text are required",
                error_code=ErrorCode.VALIDATION_ERROR,
                errors={"text": ["This field is required."]},
            )
        if len(text) > DIRECT_MESSAGE_CONFIG.MAX_TEXT_LENGTH:
            return ServiceResult.failure(
                f"Message text exceeds {DIRECT_MESSAGE_CONFIG.MAX_TEXT_LENGTH} characters",
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        User = get_user_model()
        recipient = User.objects.select_related("profile").filter(pk=to_user_id).first()
        if recipient is None:
            return ServiceResult.failure("Recipient not found", error_code=ErrorCode.NOT_FOUND)
        if recipient.pk == from_user.pk:
            return ServiceResult.failure(
                "Cannot send a direct message to yourself",
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        with transaction.atomic():
            message = DirectMessage.objects.create(
                from_user=from_user,
                to_user=recipient,
                text=text,
            )
            payload = direct_message_payload(message)
            for user_id in (recipient.pk, from_user.pk):
                ChatEventPublisher.publish_to_user(
                    user_id, EVENT_KIND.DIRECT_MESSAGE_CREATED, payload
                )

        cls.get_logger().debug(
            f"User {from_user.pk} sent direct message {message.pk} to user {recipient.pk}"
        )
        return ServiceResult.success(message)

    @classmethod
    @storage_operation
    def get_conversation(cls, user: User, other_user_id: int) -> ServiceResult[QuerySet[DirectMessage]]:
        """Non-deleted messages between two users, oldest first."""
        queryset = (
            DirectMessage.objects.filter(
                Q(from_user=user, to_user_id=other_user_id)
                | Q(from_user_id=other_user_id, to_user=user)
            )
            .select_related("from_user__profile", "to_user__profile")
            .order_by("created_at", "id")
        )
        return ServiceResult.success(queryset)

    @classmethod
    @storage_operation
    def mark_as_read(cls, user: User, sender_id: int) -> ServiceResult[int]:
        """
        Mark every unread message from sender to user as read.

        Returns:
            ServiceResult with the number of messages changed; 0 on repeat
        """
        updated = DirectMessage.all_objects.filter(
            to_user=user,
            from_user_id=sender_id,
            is_read=False,
        ).update(is_read=True, read_at=timezone.now(), updated_at=timezone.now())

        if updated:
            cls.get_logger().debug(
                f"User {user.pk} read {updated} direct message(s) from user {sender_id}"
            )
        return ServiceResult.success(updated)

    @classmethod
    def get_unread_count(cls, user: User) -> int:
        """Count non-deleted unread messages addressed to the user."""
        return DirectMessage.objects.filter(to_user=user, is_read=False).count()

    @classmethod
    @storage_operation
    def soft_delete(cls, message_id: int, requester: User) -> ServiceResult[DirectMessage]:
        """
        Soft delete a direct message.

        Only the sender may delete. Deleting twice succeeds.

        Error codes:
            NOT_FOUND: Message does not exist
            UNAUTHORIZED: Requester is not the sender
        """
        message = DirectMessage.all_objects.filter(pk=message_id).first()
        if message is None:
            return ServiceResult.failure("Message not found", error_code=ErrorCode.NOT_FOUND)

        if message.from_user_id != requester.pk:
            return ServiceResult.failure(
                "Unauthorized to delete this message",
                error_code=ErrorCode.UNAUTHORIZED,
            )

        if message.soft_delete():
            cls.get_logger().info(f"User {requester.pk} deleted direct message {message.pk}")
        return ServiceResult.success(message)


class RecentConversationService(BaseService):
    """Service building a user's recent direct conversations."""

    @classmethod
    @storage_operation
    def get_recent_conversations(
        cls,
        user: User,
        window: int | None = None,
    ) -> ServiceResult[list[RecentConversation]]:
        """
        Latest direct message per counterpart, newest first.

        Only the user's `window` most recent messages are scanned, so a
        counterpart whose last message falls outside it is not listed.

        Args:
            user: User whose conversations to list
            window: Number of recent messages to scan
                (default settings.CHAT_RECENT_CONVERSATIONS_WINDOW)

        Returns:
            ServiceResult with RecentConversation entries ordered by
            last_message.created_at descending, one per counterpart
        """
        if window is None:
            window = getattr(
                settings,
                "CHAT_RECENT_CONVERSATIONS_WINDOW",
                DIRECT_MESSAGE_CONFIG.RECENT_CONVERSATIONS_WINDOW,
            )

        messages = (
            DirectMessage.objects.filter(Q(from_user=user) | Q(to_user=user))
            .select_related("from_user__profile", "to_user__profile")
            .order_by("-created_at", "-id")[:window]
        )

        latest: dict[int, DirectMessage] = {}
        for message in messages:
            counterpart_id = (
                message.to_user_id if message.from_user_id == user.pk else message.from_user_id
            )
            latest.setdefault(counterpart_id, message)

        unread_counts = dict(
            DirectMessage.objects.filter(
                to_user=user,
                from_user_id__in=latest.keys(),
                is_read=False,
            )
            .order_by()
            .values("from_user")
            .annotate(count=Count("pk"))
            .values_list("from_user", "count")
        )

        conversations = [
            RecentConversation(
                counterpart=(
                    message.to_user if message.from_user_id == user.pk else message.from_user
                ),
                last_message=message,
                unread_count=unread_counts.get(counterpart_id, 0),
            )
            for counterpart_id, message in latest.items()
        ]
        return ServiceResult.success(conversations)
