"""
Serializers for chat API.

This module provides serializers for the chat system:
- Chat serializers (list, detail, create)
- Participant serializers (read, create, update)
- Message serializers (read, create, edit)
- Read state serializers

Serializer Hierarchy:
    ChatListSerializer: List view with unread count and last message preview
    ChatDetailSerializer: Full details including the roster
    ChatCreateSerializer: Direct/group chat creation

    ParticipantSerializer: Roster entry with user info
    ParticipantCreateSerializer: Add participant to group
    ParticipantUpdateSerializer: Change participant role
    MuteSerializer: Mute/unmute a chat

    MessageSerializer: Message with soft-delete handling
    MessageCreateSerializer: Append new message
    MessageEditSerializer: Edit message content

    MarkReadSerializer / ReadStateSerializer: Read marks

Design Decisions:
    - Read and write serializers are separate for clarity
    - Soft-deleted message content is replaced with placeholder
    - Business rules are validated by the services; serializers check shape
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from chat.constants import MESSAGE_CONFIG
from chat.models import (
    Chat,
    ChatParticipant,
    ChatType,
    Message,
    MessageType,
    ParticipantRole,
)
from chat.read_state import ReadStateService


# =============================================================================
# Message Serializers
# =============================================================================


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message serializer.

    Deleted messages keep their position and metadata but their content is
    replaced with "[Message deleted]".
    """

    sender = UserSummarySerializer(read_only=True)
    content = serializers.SerializerMethodField(
        help_text="Message content (replaced if deleted)"
    )
    read_by = serializers.SerializerMethodField(
        help_text="Ids of users holding a read receipt"
    )

    class Meta:
        model = Message
        fields = [
            "id",
            "chat",
            "sequence",
            "sender",
            "content",
            "message_type",
            "file_url",
            "is_edited",
            "edited_at",
            "is_deleted",
            "client_message_id",
            "read_by",
            "created_at",
        ]
        read_only_fields = fields

    def get_content(self, obj: Message) -> str:
        return obj.get_display_content()

    def get_read_by(self, obj: Message) -> list[int]:
        return [receipt.user_id for receipt in obj.read_receipts.all()]


class MessagePreviewSerializer(serializers.ModelSerializer):
    """
    Minimal message serializer for chat list preview.

    Used to show the last message in chat lists.
    """

    sender_id = serializers.IntegerField(read_only=True)
    content = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = ["id", "sequence", "sender_id", "content", "message_type", "created_at"]
        read_only_fields = fields

    def get_content(self, obj: Message) -> str:
        return obj.get_display_content()


class MessageCreateSerializer(serializers.Serializer):
    """Input for appending a message."""

    content = serializers.CharField(
        required=False,
        allow_blank=True,
        default="",
        trim_whitespace=False,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
    )
    message_type = serializers.ChoiceField(
        choices=MessageType.choices,
        default=MessageType.TEXT,
    )
    file_url = serializers.CharField(required=False, allow_blank=True, max_length=500)
    client_message_id = serializers.CharField(
        required=False,
        allow_null=True,
        max_length=MESSAGE_CONFIG.MAX_CLIENT_MESSAGE_ID_LENGTH,
    )


class MessageEditSerializer(serializers.Serializer):
    """Input for editing a message."""

    content = serializers.CharField(max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH)


# =============================================================================
# Participant Serializers
# =============================================================================


class ParticipantSerializer(serializers.ModelSerializer):
    """Roster entry with user info."""

    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = ChatParticipant
        fields = ["user", "role", "joined_at", "last_read_at", "is_muted"]
        read_only_fields = fields


class ParticipantCreateSerializer(serializers.Serializer):
    """Input for adding a participant to a group chat."""

    user_id = serializers.IntegerField()
    role = serializers.ChoiceField(
        choices=ParticipantRole.choices,
        default=ParticipantRole.MEMBER,
    )


class ParticipantUpdateSerializer(serializers.Serializer):
    """Input for changing a participant's role."""

    role = serializers.ChoiceField(choices=ParticipantRole.choices)


class MuteSerializer(serializers.Serializer):
    is_muted = serializers.BooleanField()


# =============================================================================
# Chat Serializers
# =============================================================================


class ChatListSerializer(serializers.ModelSerializer):
    """
    Chat list entry.

    Expects the queryset to be annotated with unread_count
    (see ChatService.list_user_chats).
    """

    group_info = serializers.DictField(read_only=True, allow_null=True)
    last_message = MessagePreviewSerializer(read_only=True, allow_null=True)
    unread_count = serializers.IntegerField(read_only=True)
    participants = ParticipantSerializer(many=True, read_only=True)

    class Meta:
        model = Chat
        fields = [
            "id",
            "chat_type",
            "group_info",
            "is_active",
            "participants",
            "last_message",
            "last_message_at",
            "message_count",
            "unread_count",
            "version",
        ]
        read_only_fields = fields


class ChatDetailSerializer(serializers.ModelSerializer):
    """Full chat details including the roster."""

    group_info = serializers.DictField(read_only=True, allow_null=True)
    created_by = UserSummarySerializer(read_only=True)
    participants = ParticipantSerializer(many=True, read_only=True)
    last_message = MessagePreviewSerializer(read_only=True, allow_null=True)
    unread_count = serializers.SerializerMethodField()

    class Meta:
        model = Chat
        fields = [
            "id",
            "chat_type",
            "group_info",
            "created_by",
            "is_active",
            "participants",
            "last_message",
            "last_message_at",
            "message_count",
            "unread_count",
            "version",
            "created_at",
        ]
        read_only_fields = fields

    def get_unread_count(self, obj: Chat) -> int:
        """Unread count for the requesting user."""
        request = self.context.get("request")
        if request is None or not request.user.is_authenticated:
            return 0
        return ReadStateService.get_unread_count(obj.pk, request.user)


class ChatCreateSerializer(serializers.Serializer):
    """
    Input for creating a chat.

    Direct chats take exactly one participant id (the other user).
    Group chats take any number of participant ids and a name; the
    creator is added as admin.
    """

    chat_type = serializers.ChoiceField(choices=ChatType.choices)
    participant_ids = serializers.ListField(
        child=serializers.IntegerField(),
        required=False,
        default=list,
    )
    name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    avatar = serializers.URLField(required=False, allow_blank=True, max_length=500)
    related_activity_id = serializers.CharField(required=False, allow_blank=True, max_length=64)

    def validate(self, attrs):
        if attrs["chat_type"] == ChatType.DIRECT and len(attrs["participant_ids"]) != 1:
            raise serializers.ValidationError(
                {"participant_ids": ["Direct chats require exactly one other participant."]}
            )
        if attrs["chat_type"] == ChatType.GROUP and not (attrs.get("name") or "").strip():
            raise serializers.ValidationError({"name": ["Group chats require a name."]})
        return attrs


# =============================================================================
# Read State Serializers
# =============================================================================


class MarkReadSerializer(serializers.Serializer):
    """Input for marking messages read; omit message_ids to mark all."""

    message_ids = serializers.ListField(
        child=serializers.IntegerField(),
        required=False,
        allow_empty=True,
    )


class ReadStateSerializer(serializers.Serializer):
    marked_count = serializers.IntegerField()
    unread_count = serializers.IntegerField()
    last_read_at = serializers.DateTimeField()
