"""
Chat system models.

This module defines the data models for the chat aggregate:
- Direct (1:1) chats between exactly two users
- Group chats with admin/member roles, optionally tied to an activity

Models:
    Chat: Aggregate root holding group info, activity flags and derived fields
    ChatParticipant: Roster entry with role, mute flag and read watermark
    Message: Append-only log entry within a chat
    MessageReadReceipt: Per-message, per-user read marker (readBy)
    DirectChatPair: Canonical user pair enforcing one direct chat per pair

Design Decisions:
    - The message log is a table ordered by a per-chat sequence number;
      appends insert a row and never rewrite existing ones
    - Derived fields on Chat (last_message, message_count, version) are only
      updated while the chat row is locked (see chat.services)
    - Messages are soft deleted so the log keeps its positions
    - Roster entries are hard deleted on removal; rejoining creates a new entry
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import SoftDeleteMixin


class ChatType(models.TextChoices):
    """
    Type of chat.

    DIRECT: Exactly two users (the canonical pair), no group info
    GROUP: One or more participants, group info and roles
    """

    DIRECT = "direct", "Direct"
    GROUP = "group", "Group"


class ParticipantRole(models.TextChoices):
    """
    Role of a roster entry.

    ADMIN: Can add participants, change roles, remove others, delete any message
    MEMBER: Can send messages, delete own messages, leave

    Role checks are applied by the API layer, not by the services.
    """

    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"


class MessageType(models.TextChoices):
    """
    Type of message content.

    TEXT: User-authored text
    IMAGE: Image reference in file_url, content is a caption
    FILE: File reference in file_url, content is a caption
    SYSTEM: Event notice (e.g. "Alice joined")
    """

    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    FILE = "file", "File"
    SYSTEM = "system", "System"


class Chat(BaseModel):
    """
    A direct or group chat: the aggregate root.

    Chat Types:
        DIRECT: Two users, unique per pair (see DirectChatPair).
                Deactivated when a party is removed.
        GROUP: Group info (name required), roster with roles.
               Never deactivated automatically.

    Fields:
        chat_type: Discriminant (direct or group)
        name, description, avatar, related_activity_id: Group info
        created_by: User who created the chat
        is_active: False once a non-group chat lost its pair
        last_message: Most recently appended message
        last_message_at: created_at of last_message (for sorting)
        message_count: Number of appended messages; next sequence is count + 1
        version: Incremented on every aggregate mutation

    Relationships:
        participants: ChatParticipant roster
        messages: Message log
        direct_pair: DirectChatPair if type is DIRECT
    """

    chat_type = models.CharField(
        max_length=10,
        choices=ChatType.choices,
        db_index=True,
        help_text="Type of chat (direct or group)",
    )

    name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Group name (empty for direct chats)",
    )
    description = models.TextField(
        blank=True,
        default="",
        help_text="Group description",
    )
    avatar = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Group avatar URL",
    )
    related_activity_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        db_index=True,
        help_text="Identifier of the activity this group chat belongs to",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_chats",
        help_text="User who created this chat",
    )

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Inactive chats are hidden from chat lists",
    )

    last_message = models.ForeignKey(
        "chat.Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recently appended message",
    )
    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of most recent message (for sorting chat lists)",
    )

    message_count = models.PositiveIntegerField(
        default=0,
        help_text="Number of messages appended to this chat",
    )
    version = models.PositiveIntegerField(
        default=0,
        help_text="Incremented on every mutation of the chat aggregate",
    )

    class Meta:
        db_table = "chat_chat"
        ordering = ["-last_message_at", "-created_at"]
        indexes = [
            models.Index(
                fields=["chat_type", "is_active"],
                name="chat_type_active_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        if self.chat_type == ChatType.DIRECT:
            return f"Direct({self.pk})"
        if self.name:
            return f"Group: {self.name}"
        return f"Group({self.pk})"

    @property
    def is_direct(self) -> bool:
        """Check if this is a direct (1:1) chat."""
        return self.chat_type == ChatType.DIRECT

    @property
    def is_group(self) -> bool:
        """Check if this is a group chat."""
        return self.chat_type == ChatType.GROUP

    @property
    def group_info(self) -> dict | None:
        """
        Group info of a group chat.

        Returns:
            Dict with name, description, avatar and related_activity_id,
            or None for direct chats
        """
        if not self.is_group:
            return None
        return {
            "name": self.name,
            "description": self.description,
            "avatar": self.avatar,
            "related_activity_id": self.related_activity_id or None,
        }

    def get_participant(self, user) -> ChatParticipant | None:
        """Get the roster entry for a user, or None if not on the roster."""
        return self.participants.filter(user=user).first()


class DirectChatPair(models.Model):
    """
    Enforces uniqueness of direct chats between two users.

    Stores the pair in canonical order (lower user id first) so that
    regardless of who initiates the chat, the unique constraint resolves
    concurrent creators to a single chat.

    Constraints:
        - UniqueConstraint(user_lower, user_higher): One chat per pair
        - CheckConstraint(user_lower_id < user_higher_id): Canonical order
    """

    chat = models.OneToOneField(
        Chat,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="direct_pair",
        help_text="The direct chat this pair represents",
    )

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with lower ID in this pair",
    )

    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with higher ID in this pair",
    )

    class Meta:
        db_table = "chat_direct_chat_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_direct_chat_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="direct_pair_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"DirectPair({self.user_lower_id}, {self.user_higher_id})"

    @property
    def user_ids(self) -> tuple[int, int]:
        return (self.user_lower_id, self.user_higher_id)


class ChatParticipant(BaseModel):
    """
    Roster entry: a user's membership in a chat.

    Fields:
        chat: Chat this entry belongs to
        user: Participating user (unique within the chat)
        role: admin or member
        joined_at: When the user joined
        last_read_at: Read watermark; messages created after it are unread
        is_muted: Whether the user muted notifications for this chat
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="participants",
        help_text="Chat this roster entry belongs to",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_participations",
        help_text="User participating in the chat",
    )

    role = models.CharField(
        max_length=10,
        choices=ParticipantRole.choices,
        default=ParticipantRole.MEMBER,
        help_text="Role in the chat",
    )

    joined_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the user joined this chat",
    )

    last_read_at = models.DateTimeField(
        default=timezone.now,
        help_text="Last time the user marked the chat as read",
    )

    is_muted = models.BooleanField(
        default=False,
        help_text="Whether the user muted this chat",
    )

    class Meta:
        db_table = "chat_participant"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user"],
                name="unique_chat_participant",
            ),
        ]
        indexes = [
            models.Index(
                fields=["user", "chat"],
                name="chat_part_user_chat_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"Participant: {self.user_id} in {self.chat_id} ({self.role})"

    @property
    def is_admin(self) -> bool:
        """Check if participant has ADMIN role."""
        return self.role == ParticipantRole.ADMIN


class Message(SoftDeleteMixin, BaseModel):
    """
    A message within a chat's log.

    Messages are append-only: after insertion only the edit fields
    (content, is_edited, edited_at), the soft delete fields and the
    read receipts change.

    Soft Delete Behavior:
        When is_deleted=True the row keeps its sequence; the API replaces
        the content with "[Message deleted]" and unread counts skip it.

    Fields:
        chat: Chat this message belongs to
        sender: User who sent the message
        content: Text or caption
        message_type: text, image, file or system
        file_url: Opaque asset reference for image/file messages
        sequence: 1-based position in the chat's log
        is_edited, edited_at: Edit marker
        client_message_id: Sender-supplied idempotency key
        read_by: Users holding a read receipt for this message
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Chat this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="chat_messages",
        help_text="User who sent this message",
    )

    content = models.TextField(
        blank=True,
        help_text="Message text or caption",
    )

    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
        help_text="Type of message",
    )

    file_url = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Asset reference for image and file messages",
    )

    sequence = models.PositiveIntegerField(
        help_text="Position of this message in the chat log (1-based)",
    )

    is_edited = models.BooleanField(
        default=False,
        help_text="Whether the content was edited after sending",
    )
    edited_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the content was last edited",
    )

    client_message_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Idempotency key supplied by the sending client",
    )

    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="MessageReadReceipt",
        related_name="read_chat_messages",
        blank=True,
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["chat", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "sequence"],
                name="unique_message_sequence",
            ),
            models.UniqueConstraint(
                fields=["chat", "sender", "client_message_id"],
                condition=Q(client_message_id__isnull=False),
                name="unique_client_message_id",
            ),
        ]
        indexes = [
            models.Index(
                fields=["chat", "created_at"],
                name="chat_msg_chat_created_idx",
            ),
            models.Index(
                fields=["sender", "-created_at"],
                name="chat_msg_sender_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        content_preview = (
            self.content[:50] + "..." if len(self.content) > 50 else self.content
        )
        deleted_str = " [deleted]" if self.is_deleted else ""
        return f"#{self.sequence} User {self.sender_id}: {content_preview}{deleted_str}"

    @property
    def is_system_message(self) -> bool:
        """Check if this is a system message."""
        return self.message_type == MessageType.SYSTEM

    def get_display_content(self) -> str:
        """
        Get content suitable for display.

        Returns:
            - "[Message deleted]" if soft deleted
            - Original content otherwise
        """
        if self.is_deleted:
            return "[Message deleted]"
        return self.content


class MessageReadReceipt(models.Model):
    """
    Read marker for one message and one user.

    The sender receives a receipt when the message is appended; other
    participants receive one through ReadStateService.mark_read.
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="read_receipts",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="message_read_receipts",
    )
    read_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_message_read_receipt"
        ordering = ["read_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_message_read_receipt",
            ),
        ]

    def __str__(self) -> str:
        return f"Receipt: message {self.message_id} read by {self.user_id}"
