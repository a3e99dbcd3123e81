"""
Tests for chat serializers.

This module tests:
- ChatCreateSerializer: per-type validation
- MessageSerializer: deleted placeholder and read_by
"""

import pytest

from chat.serializers import ChatCreateSerializer, MessageSerializer
from chat.services import MessageService


class TestChatCreateSerializer:
    def test_direct_chat_needs_exactly_one_participant(self):
        serializer = ChatCreateSerializer(data={"chat_type": "direct", "participant_ids": [1, 2]})

        assert not serializer.is_valid()
        assert "participant_ids" in serializer.errors

    def test_direct_chat(self):
        serializer = ChatCreateSerializer(data={"chat_type": "direct", "participant_ids": [7]})

        assert serializer.is_valid(), serializer.errors

    @pytest.mark.parametrize("name", ["", "   "])
    def test_group_chat_needs_name(self, name):
        serializer = ChatCreateSerializer(data={"chat_type": "group", "name": name})

        assert not serializer.is_valid()
        assert "name" in serializer.errors

    def test_group_chat_without_participants(self):
        serializer = ChatCreateSerializer(data={"chat_type": "group", "name": "Climbers"})

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["participant_ids"] == []

    def test_unknown_type(self):
        assert not ChatCreateSerializer(data={"chat_type": "channel"}).is_valid()


class TestMessageSerializer:
    def test_live_message(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "hello").data

        data = MessageSerializer(message).data

        assert data["content"] == "hello"
        assert data["sequence"] == 1
        assert data["sender"]["username"] == "alice"
        assert data["read_by"] == [alice.pk]

    def test_deleted_message_hides_content(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "secret").data
        message = MessageService.delete_message(direct_chat.pk, message.pk, alice).data

        data = MessageSerializer(message).data

        assert data["content"] == "[Message deleted]"
        assert data["is_deleted"] is True
