"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Chat management
- Participant viewing
- Message moderation
"""

from django.contrib import admin

from chat.models import Chat, ChatParticipant, DirectChatPair, Message, MessageReadReceipt


class ParticipantInline(admin.TabularInline):
    """Inline display of the roster in chat admin."""

    model = ChatParticipant
    extra = 0
    readonly_fields = ["joined_at", "last_read_at"]
    raw_id_fields = ["user"]


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    """Admin interface for Chat model."""

    list_display = [
        "id",
        "chat_type",
        "name",
        "is_active",
        "message_count",
        "version",
        "created_at",
        "last_message_at",
    ]
    list_filter = ["chat_type", "is_active", "created_at"]
    search_fields = ["name", "related_activity_id", "id"]
    readonly_fields = [
        "created_at",
        "updated_at",
        "last_message",
        "last_message_at",
        "message_count",
        "version",
    ]
    raw_id_fields = ["created_by"]
    inlines = [ParticipantInline]
    ordering = ["-created_at"]


@admin.register(DirectChatPair)
class DirectChatPairAdmin(admin.ModelAdmin):
    """Admin interface for DirectChatPair model."""

    list_display = ["chat", "user_lower", "user_higher"]
    raw_id_fields = ["chat", "user_lower", "user_higher"]


@admin.register(ChatParticipant)
class ChatParticipantAdmin(admin.ModelAdmin):
    """Admin interface for ChatParticipant model."""

    list_display = ["id", "chat", "user", "role", "is_muted", "joined_at", "last_read_at"]
    list_filter = ["role", "is_muted", "joined_at"]
    search_fields = ["user__email", "chat__name"]
    readonly_fields = ["created_at", "updated_at", "joined_at"]
    raw_id_fields = ["chat", "user"]
    ordering = ["-joined_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "chat",
        "sequence",
        "sender",
        "message_type",
        "content_preview",
        "is_edited",
        "is_deleted",
        "created_at",
    ]
    list_filter = ["message_type", "is_edited", "is_deleted", "created_at"]
    search_fields = ["content", "sender__email"]
    readonly_fields = ["created_at", "updated_at", "deleted_at", "edited_at", "sequence"]
    raw_id_fields = ["chat", "sender"]
    ordering = ["-created_at"]

    @admin.display(description="Content Preview")
    def content_preview(self, obj: Message) -> str:
        """Return truncated content for list display."""
        max_length = 50
        if len(obj.content) > max_length:
            return obj.content[:max_length] + "..."
        return obj.content


@admin.register(MessageReadReceipt)
class MessageReadReceiptAdmin(admin.ModelAdmin):
    list_display = ["message", "user", "read_at"]
    raw_id_fields = ["message", "user"]
