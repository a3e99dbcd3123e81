"""
Serializers for direct messages API.

Serializers:
    DirectMessageSerializer: Message with sender/recipient summaries
    SendDirectMessageSerializer: Input for sending
    RecentConversationSerializer: Entry of the recent conversations list
"""

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from directmessages.constants import DIRECT_MESSAGE_CONFIG
from directmessages.models import DirectMessage


class DirectMessageSerializer(serializers.ModelSerializer):
    from_user = UserSummarySerializer(read_only=True)
    to_user = UserSummarySerializer(read_only=True)

    class Meta:
        model = DirectMessage
        fields = ["id", "from_user", "to_user", "text", "is_read", "read_at", "created_at"]
        read_only_fields = fields


class SendDirectMessageSerializer(serializers.Serializer):
    """
    Input for sending a direct message.

    Blank text passes here and is rejected by DirectMessageService.send.
    """

    to = serializers.IntegerField(help_text="Recipient user id")
    text = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        max_length=DIRECT_MESSAGE_CONFIG.MAX_TEXT_LENGTH,
    )


class RecentConversationSerializer(serializers.Serializer):
    user = UserSummarySerializer(source="counterpart", read_only=True)
    last_message = DirectMessageSerializer(read_only=True)
    unread_count = serializers.IntegerField(read_only=True)
