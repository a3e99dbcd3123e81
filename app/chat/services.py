"""
Chat system service layer.

This module provides the business logic for the chat aggregate,
encapsulating all operations on chats, participants and messages.

Services:
    ChatService: Chat lifecycle (direct dedup, group creation, lookups, lists)
    MessageService: Message log (append, edit, soft delete)
    ParticipantService: Roster management (add, remove, roles, mute)

Read state (mark read, unread counts) lives in chat.read_state.

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure() with an ErrorCode
    - Every mutation locks the chat row first (see chat.locks)
    - Live events are published after commit (see chat.events)
    - Role-based authorization is applied by the API layer

Usage:
    from chat.services import ChatService, MessageService, ParticipantService

    # Create or fetch the direct chat of a pair
    result = ChatService.create_direct_chat(alice, bob)
    if result.success:
        chat = result.data

    # Append a message (retry-safe with a client_message_id)
    result = MessageService.append_message(
        chat_id=chat.id,
        sender=alice,
        content="Hello!",
        client_message_id="c0a1f2",
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import ErrorCode, NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService, ServiceResult, storage_operation

from chat.constants import EVENT_KIND, MESSAGE_CONFIG
from chat.events import ChatEventPublisher, message_payload, participant_payload
from chat.locks import bump_version, lock_chat, require_participant
from chat.models import (
    Chat,
    ChatParticipant,
    ChatType,
    DirectChatPair,
    Message,
    MessageReadReceipt,
    MessageType,
    ParticipantRole,
)

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User

logger = logging.getLogger(__name__)


def _chat_payload(chat: Chat) -> dict:
    return {
        "id": chat.pk,
        "chat_type": chat.chat_type,
        "group_info": chat.group_info,
        "created_by": chat.created_by_id,
        "participant_ids": list(chat.participants.values_list("user_id", flat=True)),
    }


def _validate_role(role: str) -> None:
    if role not in ParticipantRole.values:
        raise ValidationError(
            f"Invalid role '{role}'. Must be admin or member",
            details={"errors": {"role": [f"Must be one of: {', '.join(ParticipantRole.values)}"]}},
        )


class ChatService(BaseService):
    """
    Service for chat lifecycle operations.

    Methods:
        create_direct_chat: Find or create the direct chat of a user pair
        create_group_chat: Create a group chat with an initial roster
        get_chat: Look up a chat by id
        get_chat_for_participant: Look up a chat the user belongs to
        list_user_chats: Active chats of a user with unread counts
    """

    @classmethod
    @storage_operation
    def create_direct_chat(cls, user_a: User, user_b: User) -> ServiceResult[Chat]:
        """
        Create or retrieve the direct chat between two users.

        Direct chats are unique per unordered pair. If the pair already has
        a chat it is returned; participants that were removed are restored
        and a deactivated chat is reactivated.

        Implementation:
            1. Validate users are different
            2. Canonicalize order (lower user id first)
            3. Look up existing DirectChatPair
            4. If not found, create chat + pair + roster in a savepoint
            5. A concurrent creator that loses the race hits the unique
               constraint and returns the winner's chat

        Error codes:
            VALIDATION_ERROR: Cannot create a direct chat with yourself
        """
        if user_a.pk == user_b.pk:
            return ServiceResult.failure(
                "Cannot create a direct chat with yourself",
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        user_lower, user_higher = (
            (user_a, user_b) if user_a.pk < user_b.pk else (user_b, user_a)
        )

        existing_pair = DirectChatPair.objects.filter(
            user_lower=user_lower, user_higher=user_higher
        ).first()
        if existing_pair is not None:
            cls.get_logger().debug(
                f"Found existing direct chat {existing_pair.chat_id} "
                f"between users {user_lower.pk} and {user_higher.pk}"
            )
            return ServiceResult.success(
                cls._restore_direct_chat(existing_pair.chat_id, (user_a, user_b))
            )

        try:
            with transaction.atomic():
                chat = Chat.objects.create(
                    chat_type=ChatType.DIRECT,
                    created_by=user_a,
                )
                DirectChatPair.objects.create(
                    chat=chat,
                    user_lower=user_lower,
                    user_higher=user_higher,
                )
                ChatParticipant.objects.bulk_create(
                    [
                        ChatParticipant(chat=chat, user=user_a, role=ParticipantRole.MEMBER),
                        ChatParticipant(chat=chat, user=user_b, role=ParticipantRole.MEMBER),
                    ]
                )
                ChatEventPublisher.publish(chat.pk, EVENT_KIND.CHAT_CREATED, _chat_payload(chat))
        except IntegrityError:
            pair = DirectChatPair.objects.filter(
                user_lower=user_lower, user_higher=user_higher
            ).first()
            if pair is None:
                raise
            cls.get_logger().info(
                f"Lost direct chat creation race for users {user_lower.pk} and "
                f"{user_higher.pk}, using chat {pair.chat_id}"
            )
            return ServiceResult.success(cls._restore_direct_chat(pair.chat_id, (user_a, user_b)))

        cls.get_logger().info(
            f"Created direct chat {chat.pk} between users {user_lower.pk} and {user_higher.pk}"
        )
        return ServiceResult.success(chat)

    @classmethod
    def _restore_direct_chat(cls, chat_id: int, users: tuple[User, User]) -> Chat:
        """Bring an existing direct chat back to its two-member, active state."""
        with transaction.atomic():
            chat = lock_chat(chat_id)
            present = set(chat.participants.values_list("user_id", flat=True))
            missing = [user for user in users if user.pk not in present]
            if not missing and chat.is_active:
                return chat

            for user in missing:
                participant = ChatParticipant.objects.create(
                    chat=chat, user=user, role=ParticipantRole.MEMBER
                )
                ChatEventPublisher.publish(
                    chat.pk, EVENT_KIND.PARTICIPANT_ADDED, participant_payload(participant)
                )
            bump_version(chat, is_active=True)

        cls.get_logger().info(
            f"Restored direct chat {chat.pk} ({len(missing)} participant(s) re-added)"
        )
        return chat

    @classmethod
    @storage_operation
    def create_group_chat(
        cls,
        participants: list | None,
        group_info: dict,
        created_by: User,
    ) -> ServiceResult[Chat]:
        """
        Create a new group chat.

        Args:
            participants: Users or (user, role) pairs. Empty or None means
                [(created_by, admin)]. Duplicates are collapsed.
            group_info: {"name", "description", "avatar", "related_activity_id"}
            created_by: Creator, always on the roster as admin

        Returns:
            ServiceResult with new Chat

        Error codes:
            VALIDATION_ERROR: Group name is required, or a role is invalid
        """
        group_info = group_info or {}
        name = (group_info.get("name") or "").strip()
        if not name:
            return ServiceResult.failure(
                "Group name is required",
                error_code=ErrorCode.VALIDATION_ERROR,
                errors={"name": ["This field is required."]},
            )

        # user id -> (user, role); creator first, insertion order kept
        roster: dict[int, tuple] = {created_by.pk: (created_by, ParticipantRole.ADMIN)}
        for entry in participants or []:
            user, role = entry if isinstance(entry, (tuple, list)) else (entry, ParticipantRole.MEMBER)
            _validate_role(role)
            if user.pk == created_by.pk or user.pk in roster:
                continue
            roster[user.pk] = (user, role)

        with transaction.atomic():
            chat = Chat.objects.create(
                chat_type=ChatType.GROUP,
                name=name,
                description=(group_info.get("description") or "").strip(),
                avatar=group_info.get("avatar") or "",
                related_activity_id=str(group_info.get("related_activity_id") or ""),
                created_by=created_by,
            )
            ChatParticipant.objects.bulk_create(
                [ChatParticipant(chat=chat, user=user, role=role) for user, role in roster.values()]
            )
            ChatEventPublisher.publish(chat.pk, EVENT_KIND.CHAT_CREATED, _chat_payload(chat))

        cls.get_logger().info(
            f"Created group chat {chat.pk} named '{name}' with {len(roster)} participants"
        )
        return ServiceResult.success(chat)

    @classmethod
    @storage_operation
    def get_chat(cls, chat_id: int) -> ServiceResult[Chat]:
        """
        Look up a chat.

        Error codes:
            NOT_FOUND: Chat does not exist
        """
        chat = Chat.objects.select_related("created_by").filter(pk=chat_id).first()
        if chat is None:
            return ServiceResult.failure("Chat not found", error_code=ErrorCode.NOT_FOUND)
        return ServiceResult.success(chat)

    @classmethod
    @storage_operation
    def get_chat_for_participant(cls, chat_id: int, user: User) -> ServiceResult[Chat]:
        """
        Look up a chat the user is on the roster of.

        Error codes:
            NOT_FOUND: Chat does not exist
            NOT_PARTICIPANT: User is not on the roster
        """
        result = cls.get_chat(chat_id)
        if not result.success:
            return result

        if not result.data.participants.filter(user=user).exists():
            return ServiceResult.failure(
                "You are not a participant in this chat",
                error_code=ErrorCode.NOT_PARTICIPANT,
            )
        return result

    @classmethod
    @storage_operation
    def list_user_chats(
        cls,
        user: User,
        chat_type: str | None = None,
    ) -> ServiceResult[QuerySet[Chat]]:
        """
        Active chats the user is on, newest activity first.

        Each chat is annotated with unread_count for the user.

        Error codes:
            VALIDATION_ERROR: Unknown chat type filter
        """
        from chat.read_state import annotate_unread_counts

        queryset = Chat.objects.filter(participants__user=user, is_active=True)
        if chat_type:
            if chat_type not in ChatType.values:
                return ServiceResult.failure(
                    f"Invalid chat type '{chat_type}'",
                    error_code=ErrorCode.VALIDATION_ERROR,
                )
            queryset = queryset.filter(chat_type=chat_type)

        queryset = annotate_unread_counts(queryset, user).order_by(
            F("last_message_at").desc(nulls_last=True), "-created_at", "-id"
        )
        return ServiceResult.success(queryset)


class MessageService(BaseService):
    """
    Service for the message log.

    Methods:
        append_message: Append a message (idempotent with client_message_id)
        edit_message: Edit own message content
        delete_message: Soft delete a message
    """

    @classmethod
    def _validate_content(
        cls,
        content: str,
        message_type: str,
        file_url: str | None,
    ) -> ServiceResult | None:
        if message_type not in MessageType.values:
            return ServiceResult.failure(
                "Invalid message type",
                error_code=ErrorCode.VALIDATION_ERROR,
                errors={"message_type": [f"Must be one of: {', '.join(MessageType.values)}"]},
            )

        if message_type in (MessageType.IMAGE, MessageType.FILE):
            if not file_url:
                return ServiceResult.failure(
                    f"A file_url is required for {message_type} messages",
                    error_code=ErrorCode.VALIDATION_ERROR,
                    errors={"file_url": ["This field is required."]},
                )
        else:
            validation = cls.validate_required(content=content)
            if validation is not None:
                return ServiceResult.failure(
                    "Message content cannot be empty",
                    error_code=ErrorCode.VALIDATION_ERROR,
                    errors=validation.errors,
                )

        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code=ErrorCode.VALIDATION_ERROR,
            )
        return None

    @staticmethod
    def _find_by_client_id(chat_id: int, sender: User, client_message_id: str) -> Message | None:
        return Message.objects.filter(
            chat_id=chat_id,
            sender=sender,
            client_message_id=client_message_id,
        ).first()

    @classmethod
    @storage_operation
    def append_message(
        cls,
        chat_id: int,
        sender: User,
        content: str,
        message_type: str = MessageType.TEXT,
        file_url: str | None = None,
        client_message_id: str | None = None,
    ) -> ServiceResult[Message]:
        """
        Append a message to a chat's log.

        The sender gets a read receipt for their own message. The chat's
        last_message, last_message_at, message_count and version are updated
        under the chat row lock, so concurrent appends never lose each other.

        With a client_message_id already used by the same sender in the same
        chat, the stored message is returned and nothing is appended or
        published again.

        Args:
            chat_id: Target chat
            sender: User sending the message
            content: Text (required for text and system messages) or caption
            message_type: text, image, file or system
            file_url: Asset reference (required for image and file)
            client_message_id: Optional idempotency key

        Returns:
            ServiceResult with the stored Message

        Error codes:
            NOT_FOUND: Chat does not exist
            NOT_PARTICIPANT: Sender is not on the roster
            VALIDATION_ERROR: Empty/oversized content, bad type, missing file_url
        """
        content = content.strip() if content else ""
        validation = cls._validate_content(content, message_type, file_url)
        if validation is not None:
            return validation

        if client_message_id is not None:
            client_message_id = str(client_message_id).strip() or None
        if client_message_id and len(client_message_id) > MESSAGE_CONFIG.MAX_CLIENT_MESSAGE_ID_LENGTH:
            return ServiceResult.failure(
                "client_message_id is too long",
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        try:
            with transaction.atomic():
                chat = lock_chat(chat_id)
                require_participant(chat, sender)

                if client_message_id:
                    existing = cls._find_by_client_id(chat.pk, sender, client_message_id)
                    if existing is not None:
                        cls.get_logger().debug(
                            f"Duplicate append {client_message_id} in chat {chat.pk}, "
                            f"returning message {existing.pk}"
                        )
                        return ServiceResult.success(existing)

                message = Message.objects.create(
                    chat=chat,
                    sender=sender,
                    content=content,
                    message_type=message_type,
                    file_url=file_url or "",
                    sequence=chat.message_count + 1,
                    client_message_id=client_message_id,
                )
                MessageReadReceipt.objects.create(
                    message=message,
                    user=sender,
                    read_at=message.created_at,
                )
                bump_version(
                    chat,
                    last_message=message,
                    last_message_at=message.created_at,
                    message_count=F("message_count") + 1,
                )
                ChatEventPublisher.publish(
                    chat.pk, EVENT_KIND.MESSAGE_CREATED, message_payload(message)
                )
        except IntegrityError:
            if not client_message_id:
                raise
            existing = cls._find_by_client_id(chat_id, sender, client_message_id)
            if existing is None:
                raise
            return ServiceResult.success(existing)

        cls.get_logger().debug(
            f"User {sender.pk} appended message {message.pk} (#{message.sequence}) "
            f"to chat {chat.pk}"
        )
        return ServiceResult.success(message)

    @classmethod
    @storage_operation
    def edit_message(
        cls,
        chat_id: int,
        message_id: int,
        user: User,
        content: str,
    ) -> ServiceResult[Message]:
        """
        Edit the content of a message.

        Only the sender can edit; deleted and system messages are immutable.

        Error codes:
            NOT_FOUND: Chat or message does not exist
            UNAUTHORIZED: User is not the sender
            VALIDATION_ERROR: Empty/oversized content, deleted or system message
        """
        content = content.strip() if content else ""
        if not content:
            return ServiceResult.failure(
                "Message content cannot be empty",
                error_code=ErrorCode.VALIDATION_ERROR,
            )
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        with transaction.atomic():
            chat = lock_chat(chat_id)
            message = cls._get_message(chat, message_id)

            if message.sender_id != user.pk:
                raise PermissionDeniedError("You can only edit your own messages")
            if message.is_deleted:
                raise ValidationError("Cannot edit a deleted message")
            if message.is_system_message:
                raise ValidationError("Cannot edit system messages")

            message.content = content
            message.is_edited = True
            message.edited_at = timezone.now()
            message.save(update_fields=["content", "is_edited", "edited_at", "updated_at"])
            bump_version(chat)
            ChatEventPublisher.publish(
                chat.pk, EVENT_KIND.MESSAGE_EDITED, message_payload(message)
            )

        cls.get_logger().info(f"User {user.pk} edited message {message.pk} in chat {chat.pk}")
        return ServiceResult.success(message)

    @classmethod
    @storage_operation
    def delete_message(
        cls,
        chat_id: int,
        message_id: int,
        user: User,
    ) -> ServiceResult[Message]:
        """
        Soft delete a message.

        The sender or a chat admin may delete. The message keeps its place
        in the log; last_message is not rewound. Deleting an already deleted
        message succeeds without publishing again.

        Error codes:
            NOT_FOUND: Chat or message does not exist
            UNAUTHORIZED: User is neither the sender nor a chat admin
        """
        with transaction.atomic():
            chat = lock_chat(chat_id)
            message = cls._get_message(chat, message_id)

            if message.sender_id != user.pk:
                participant = chat.get_participant(user)
                if participant is None or not participant.is_admin:
                    raise PermissionDeniedError(
                        "You can only delete your own messages or be an admin"
                    )

            if not message.soft_delete():
                return ServiceResult.success(message)

            bump_version(chat)
            ChatEventPublisher.publish(
                chat.pk, EVENT_KIND.MESSAGE_DELETED, message_payload(message)
            )

        cls.get_logger().info(f"User {user.pk} deleted message {message.pk} in chat {chat.pk}")
        return ServiceResult.success(message)

    @staticmethod
    def _get_message(chat: Chat, message_id: int) -> Message:
        message = chat.messages.select_related("sender__profile").filter(pk=message_id).first()
        if message is None:
            raise NotFoundError("Message not found", details={"message_id": str(message_id)})
        return message


class ParticipantService(BaseService):
    """
    Service for roster management.

    Methods:
        add_participant: Add a user to a group chat
        remove_participant: Remove a user (deactivates a broken direct chat)
        update_role: Change a participant's role in a group chat
        set_muted: Mute or unmute a chat for a participant

    Note:
        Who may call these (admins, the user themself) is decided by the
        API layer; see chat.permissions.
    """

    @classmethod
    @storage_operation
    def add_participant(
        cls,
        chat_id: int,
        user_id: int,
        role: str = ParticipantRole.MEMBER,
    ) -> ServiceResult[ChatParticipant]:
        """
        Add a user to a group chat's roster.

        The new entry starts with last_read_at = now, so earlier history
        does not count as unread.

        Error codes:
            NOT_FOUND: Chat or user does not exist
            VALIDATION_ERROR: Direct chat, or invalid role
            ALREADY_PARTICIPANT: User is already on the roster
        """
        _validate_role(role)
        User = get_user_model()

        with transaction.atomic():
            chat = lock_chat(chat_id)
            if chat.is_direct:
                return ServiceResult.failure(
                    "Can only add participants to group chats",
                    error_code=ErrorCode.VALIDATION_ERROR,
                )

            user = User.objects.filter(pk=user_id).first()
            if user is None:
                return ServiceResult.failure("User not found", error_code=ErrorCode.NOT_FOUND)

            if chat.participants.filter(user=user).exists():
                return ServiceResult.failure(
                    "User is already a participant",
                    error_code=ErrorCode.ALREADY_PARTICIPANT,
                )

            now = timezone.now()
            participant = ChatParticipant.objects.create(
                chat=chat,
                user=user,
                role=role,
                joined_at=now,
                last_read_at=now,
            )
            bump_version(chat)
            ChatEventPublisher.publish(
                chat.pk, EVENT_KIND.PARTICIPANT_ADDED, participant_payload(participant)
            )

        cls.get_logger().info(f"Added user {user.pk} to chat {chat.pk} as {role}")
        return ServiceResult.success(participant)

    @classmethod
    @storage_operation
    def remove_participant(
        cls, chat_id: int, user_id: int, leaving: bool = False
    ) -> ServiceResult[Chat]:
        """
        Remove a user from a chat's roster.

        A non-group chat that no longer holds its pair (fewer than two
        participants) is deactivated. Group chats stay active even when
        empty.

        With leaving=True the user is removing themself, and the only admin
        of a group cannot leave while other participants remain.

        Returns:
            ServiceResult with the updated Chat

        Error codes:
            NOT_FOUND: Chat does not exist
            NOT_PARTICIPANT: User is not on the roster
            VALIDATION_ERROR: The only admin of a group tried to leave
        """
        with transaction.atomic():
            chat = lock_chat(chat_id)
            participant = chat.participants.filter(user_id=user_id).first()
            if participant is None:
                return ServiceResult.failure(
                    "User is not a participant",
                    error_code=ErrorCode.NOT_PARTICIPANT,
                )

            if leaving and chat.is_group and participant.is_admin:
                others = chat.participants.exclude(pk=participant.pk)
                if others.exists() and not others.filter(role=ParticipantRole.ADMIN).exists():
                    raise ValidationError(
                        "Cannot leave as the only admin. Promote another member to admin first."
                    )

            participant.delete()
            fields = {}
            if not chat.is_group and chat.participants.count() < 2:
                fields["is_active"] = False
            bump_version(chat, **fields)
            ChatEventPublisher.publish(
                chat.pk,
                EVENT_KIND.PARTICIPANT_REMOVED,
                {"user_id": user_id, "chat_is_active": chat.is_active},
            )

        cls.get_logger().info(
            f"Removed user {user_id} from chat {chat.pk} (active={chat.is_active})"
        )
        return ServiceResult.success(chat)

    @classmethod
    @storage_operation
    def update_role(cls, chat_id: int, user_id: int, role: str) -> ServiceResult[ChatParticipant]:
        """
        Change a participant's role in a group chat.

        Error codes:
            NOT_FOUND: Chat does not exist
            NOT_PARTICIPANT: User is not on the roster
            VALIDATION_ERROR: Invalid role, or not a group chat
        """
        _validate_role(role)

        with transaction.atomic():
            chat = lock_chat(chat_id)
            if not chat.is_group:
                return ServiceResult.failure(
                    "Can only update roles in group chats",
                    error_code=ErrorCode.VALIDATION_ERROR,
                )

            participant = chat.participants.filter(user_id=user_id).first()
            if participant is None:
                return ServiceResult.failure(
                    "Participant not found",
                    error_code=ErrorCode.NOT_PARTICIPANT,
                )

            if participant.role != role:
                participant.role = role
                participant.save(update_fields=["role", "updated_at"])
                bump_version(chat)
                ChatEventPublisher.publish(
                    chat.pk, EVENT_KIND.PARTICIPANT_UPDATED, participant_payload(participant)
                )

        cls.get_logger().info(f"User {user_id} is now {role} in chat {chat.pk}")
        return ServiceResult.success(participant)

    @classmethod
    @storage_operation
    def set_muted(cls, chat_id: int, user: User, is_muted: bool) -> ServiceResult[ChatParticipant]:
        """
        Mute or unmute a chat for a participant.

        Error codes:
            NOT_FOUND: Chat does not exist
            NOT_PARTICIPANT: User is not on the roster
        """
        with transaction.atomic():
            chat = lock_chat(chat_id)
            participant = require_participant(chat, user)
            if participant.is_muted != is_muted:
                participant.is_muted = is_muted
                participant.save(update_fields=["is_muted", "updated_at"])
                bump_version(chat)

        cls.get_logger().debug(
            f"User {user.pk} {'muted' if is_muted else 'unmuted'} chat {chat.pk}"
        )
        return ServiceResult.success(participant)
