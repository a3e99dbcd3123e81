from django.contrib import admin

from directmessages.models import DirectMessage


@admin.register(DirectMessage)
class DirectMessageAdmin(admin.ModelAdmin):
    """Admin interface for DirectMessage model, deleted messages included."""

    list_display = ["id", "from_user", "to_user", "text_preview", "is_read", "is_deleted", "created_at"]
    list_filter = ["is_read", "is_deleted", "created_at"]
    search_fields = ["text", "from_user__email", "to_user__email"]
    readonly_fields = ["created_at", "updated_at", "read_at", "deleted_at"]
    raw_id_fields = ["from_user", "to_user"]
    ordering = ["-created_at"]

    def get_queryset(self, request):
        return DirectMessage.all_objects.select_related("from_user", "to_user")

    @admin.display(description="Text")
    def text_preview(self, obj: DirectMessage) -> str:
        if len(obj.text) > 50:
            return obj.text[:50] + "..."
        return obj.text
