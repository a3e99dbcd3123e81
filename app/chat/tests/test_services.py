"""
Tests for chat services.

This module tests:
- ChatService: direct chat dedup and restore, group creation, lookups, lists
- MessageService: append (idempotency, derived fields, concurrency), edit, delete
- ParticipantService: add, remove (direct chat deactivation), roles, mute

Test Organization:
    - One test class per service operation
    - Failures are asserted through ServiceResult.error_code
"""

from datetime import timedelta
from unittest import mock

import pytest
from django.db import IntegrityError, OperationalError
from freezegun import freeze_time

from authentication.tests.factories import UserFactory
from chat.models import (
    Chat,
    ChatParticipant,
    ChatType,
    DirectChatPair,
    Message,
    MessageType,
    ParticipantRole,
)
from chat.services import ChatService, MessageService, ParticipantService
from core.exceptions import ErrorCode


# =============================================================================
# ChatService
# =============================================================================


class TestCreateDirectChat:
    """Tests for ChatService.create_direct_chat."""

    def test_creates_chat_with_both_users_as_members(self, alice, bob):
        result = ChatService.create_direct_chat(alice, bob)

        assert result.success
        chat = result.data
        assert chat.chat_type == ChatType.DIRECT
        assert chat.is_active
        assert chat.created_by == alice
        roster = dict(chat.participants.values_list("user_id", "role"))
        assert roster == {alice.pk: ParticipantRole.MEMBER, bob.pk: ParticipantRole.MEMBER}

    def test_second_call_returns_same_chat(self, alice, bob):
        """
        Creating a direct chat twice yields one chat.

        Why it matters: a pair must never end up with two direct chats.
        """
        first = ChatService.create_direct_chat(alice, bob).data
        second = ChatService.create_direct_chat(alice, bob).data

        assert first.pk == second.pk
        assert Chat.objects.filter(chat_type=ChatType.DIRECT).count() == 1

    def test_argument_order_does_not_matter(self, alice, bob):
        first = ChatService.create_direct_chat(alice, bob).data
        second = ChatService.create_direct_chat(bob, alice).data

        assert first.pk == second.pk
        assert DirectChatPair.objects.count() == 1

    def test_chat_with_yourself_is_rejected(self, alice):
        result = ChatService.create_direct_chat(alice, alice)

        assert not result.success
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert Chat.objects.count() == 0

    def test_losing_a_creation_race_returns_the_winners_chat(self, alice, bob):
        """
        A creator that misses the existing pair hits the unique constraint
        and falls back to the chat that won.
        """
        winner = ChatService.create_direct_chat(alice, bob).data
        real_filter = DirectChatPair.objects.filter
        stale_lookup = mock.Mock()
        stale_lookup.first.return_value = None

        with mock.patch.object(
            DirectChatPair.objects,
            "filter",
            side_effect=[stale_lookup, real_filter(chat=winner)],
        ):
            result = ChatService.create_direct_chat(bob, alice)

        assert result.success
        assert result.data.pk == winner.pk
        assert Chat.objects.filter(chat_type=ChatType.DIRECT).count() == 1

    def test_reactivates_chat_after_a_party_left(self, direct_chat, alice, bob):
        ParticipantService.remove_participant(direct_chat.pk, bob.pk)
        direct_chat.refresh_from_db()
        assert not direct_chat.is_active

        result = ChatService.create_direct_chat(alice, bob)

        assert result.success
        assert result.data.pk == direct_chat.pk
        assert result.data.is_active
        assert set(result.data.participants.values_list("user_id", flat=True)) == {alice.pk, bob.pk}

    def test_existing_active_chat_is_returned_unchanged(self, direct_chat, alice, bob):
        version = direct_chat.version

        result = ChatService.create_direct_chat(bob, alice)

        assert result.data.version == version


class TestCreateGroupChat:
    """Tests for ChatService.create_group_chat."""

    def test_creator_is_admin_and_members_are_added(self, alice, bob, carol):
        result = ChatService.create_group_chat(
            participants=[bob, (carol, ParticipantRole.ADMIN)],
            group_info={"name": "  Trail Run  ", "description": "Sunday"},
            created_by=alice,
        )

        assert result.success
        chat = result.data
        assert chat.chat_type == ChatType.GROUP
        assert chat.name == "Trail Run"
        assert chat.description == "Sunday"
        roster = dict(chat.participants.values_list("user_id", "role"))
        assert roster == {
            alice.pk: ParticipantRole.ADMIN,
            bob.pk: ParticipantRole.MEMBER,
            carol.pk: ParticipantRole.ADMIN,
        }

    def test_empty_participants_means_creator_only(self, alice):
        result = ChatService.create_group_chat(
            participants=[],
            group_info={"name": "Solo"},
            created_by=alice,
        )

        assert result.success
        participants = list(result.data.participants.all())
        assert len(participants) == 1
        assert participants[0].user == alice
        assert participants[0].is_admin

    def test_duplicates_are_collapsed(self, alice, bob):
        result = ChatService.create_group_chat(
            participants=[bob, bob, alice],
            group_info={"name": "Dupes"},
            created_by=alice,
        )

        assert result.data.participants.count() == 2
        assert result.data.get_participant(alice).is_admin

    def test_name_is_required(self, alice, bob):
        result = ChatService.create_group_chat(
            participants=[bob],
            group_info={"name": "   "},
            created_by=alice,
        )

        assert not result.success
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert "name" in result.errors
        assert Chat.objects.count() == 0

    def test_invalid_role_is_rejected(self, alice, bob):
        result = ChatService.create_group_chat(
            participants=[(bob, "owner")],
            group_info={"name": "Roles"},
            created_by=alice,
        )

        assert not result.success
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert "role" in result.errors

    def test_related_activity_is_stored(self, alice):
        chat = ChatService.create_group_chat(
            participants=None,
            group_info={"name": "Yoga", "related_activity_id": 77},
            created_by=alice,
        ).data

        assert chat.group_info["related_activity_id"] == "77"


class TestChatLookups:
    def test_get_chat_not_found(self, db):
        result = ChatService.get_chat(999999)

        assert not result.success
        assert result.error_code == ErrorCode.NOT_FOUND

    def test_get_chat_for_participant(self, group_chat, bob):
        result = ChatService.get_chat_for_participant(group_chat.pk, bob)

        assert result.success
        assert result.data.pk == group_chat.pk

    def test_get_chat_for_non_participant(self, group_chat, outsider):
        result = ChatService.get_chat_for_participant(group_chat.pk, outsider)

        assert not result.success
        assert result.error_code == ErrorCode.NOT_PARTICIPANT


class TestListUserChats:
    """Tests for ChatService.list_user_chats."""

    def test_orders_by_latest_message(self, alice, bob, carol):
        with freeze_time("2026-03-01 10:00:00") as frozen:
            older = ChatService.create_direct_chat(alice, bob).data
            newer = ChatService.create_direct_chat(alice, carol).data
            empty = ChatService.create_group_chat([bob], {"name": "Quiet"}, alice).data
            frozen.tick(timedelta(minutes=1))
            MessageService.append_message(newer.pk, alice, "first")
            frozen.tick(timedelta(minutes=1))
            MessageService.append_message(older.pk, bob, "latest")

        chats = list(ChatService.list_user_chats(alice).data)

        assert [chat.pk for chat in chats] == [older.pk, newer.pk, empty.pk]

    def test_unread_counts_are_annotated(self, direct_chat, alice, bob):
        MessageService.append_message(direct_chat.pk, bob, "one")
        MessageService.append_message(direct_chat.pk, bob, "two")

        chats = {chat.pk: chat for chat in ChatService.list_user_chats(alice).data}
        assert chats[direct_chat.pk].unread_count == 2

        chats = {chat.pk: chat for chat in ChatService.list_user_chats(bob).data}
        assert chats[direct_chat.pk].unread_count == 0

    def test_inactive_chats_are_hidden(self, direct_chat, alice, bob):
        ParticipantService.remove_participant(direct_chat.pk, bob.pk)

        assert list(ChatService.list_user_chats(alice).data) == []

    def test_filters_by_type(self, direct_chat, group_chat, alice):
        chats = list(ChatService.list_user_chats(alice, chat_type=ChatType.GROUP).data)

        assert [chat.pk for chat in chats] == [group_chat.pk]

    def test_unknown_type_is_rejected(self, alice):
        result = ChatService.list_user_chats(alice, chat_type="channel")

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_only_chats_the_user_is_on(self, group_chat, outsider):
        assert list(ChatService.list_user_chats(outsider).data) == []


# =============================================================================
# MessageService
# =============================================================================


class TestAppendMessage:
    """Tests for MessageService.append_message."""

    def test_round_trip(self, direct_chat, alice):
        """
        An appended message is returned with the same sender, content and
        kind, and the sender has already read it.
        """
        result = MessageService.append_message(direct_chat.pk, alice, "text-1", MessageType.TEXT)

        assert result.success
        stored = Message.objects.get(pk=result.data.pk)
        assert stored.sender == alice
        assert stored.content == "text-1"
        assert stored.message_type == MessageType.TEXT
        assert list(stored.read_by.all()) == [alice]

    def test_updates_derived_fields(self, direct_chat, alice, bob):
        first = MessageService.append_message(direct_chat.pk, alice, "one").data
        second = MessageService.append_message(direct_chat.pk, bob, "two").data

        direct_chat.refresh_from_db()
        assert (first.sequence, second.sequence) == (1, 2)
        assert direct_chat.message_count == 2
        assert direct_chat.last_message == second
        assert direct_chat.last_message_at == second.created_at
        assert direct_chat.version == 2

    def test_content_is_trimmed(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "  hello  ").data

        assert message.content == "hello"

    def test_unknown_chat(self, alice):
        result = MessageService.append_message(424242, alice, "hi")

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_sender_must_be_participant(self, direct_chat, outsider):
        result = MessageService.append_message(direct_chat.pk, outsider, "hi")

        assert result.error_code == ErrorCode.NOT_PARTICIPANT
        assert Message.objects.count() == 0

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty_text_is_rejected(self, direct_chat, alice, content):
        result = MessageService.append_message(direct_chat.pk, alice, content)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert "content" in result.errors

    def test_oversized_content_is_rejected(self, direct_chat, alice):
        result = MessageService.append_message(direct_chat.pk, alice, "x" * 10001)

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_unknown_type_is_rejected(self, direct_chat, alice):
        result = MessageService.append_message(direct_chat.pk, alice, "hi", message_type="video")

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_image_requires_file_url(self, direct_chat, alice):
        result = MessageService.append_message(direct_chat.pk, alice, "", MessageType.IMAGE)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert "file_url" in result.errors

    def test_image_with_empty_caption(self, direct_chat, alice):
        result = MessageService.append_message(
            direct_chat.pk, alice, "", MessageType.IMAGE, file_url="assets/img/1.png"
        )

        assert result.success
        assert result.data.file_url == "assets/img/1.png"

    def test_retry_with_client_message_id_appends_once(self, direct_chat, alice):
        """
        Why it matters: a client retrying after a timeout must not create a
        duplicate message.
        """
        first = MessageService.append_message(direct_chat.pk, alice, "hi", client_message_id="c-1")
        retry = MessageService.append_message(direct_chat.pk, alice, "hi", client_message_id="c-1")

        assert retry.success
        assert retry.data.pk == first.data.pk
        direct_chat.refresh_from_db()
        assert direct_chat.message_count == 1

    def test_same_client_id_from_other_sender_is_a_new_message(self, direct_chat, alice, bob):
        first = MessageService.append_message(direct_chat.pk, alice, "hi", client_message_id="c-1")
        other = MessageService.append_message(direct_chat.pk, bob, "hi", client_message_id="c-1")

        assert other.data.pk != first.data.pk

    def test_concurrent_retry_resolved_by_unique_constraint(self, direct_chat, alice):
        stored = MessageService.append_message(
            direct_chat.pk, alice, "hi", client_message_id="c-9"
        ).data

        with mock.patch.object(
            MessageService, "_find_by_client_id", side_effect=[None, stored]
        ):
            result = MessageService.append_message(
                direct_chat.pk, alice, "hi", client_message_id="c-9"
            )

        assert result.success
        assert result.data.pk == stored.pk
        assert Message.objects.filter(chat=direct_chat).count() == 1

    def test_appends_from_stale_instances_are_not_lost(self, direct_chat, alice, bob):
        """
        Two writers holding the same stale snapshot of the chat both persist.

        Why it matters: derived fields are updated against the locked row,
        never written back from an in-memory copy.
        """
        stale_a = Chat.objects.get(pk=direct_chat.pk)
        stale_b = Chat.objects.get(pk=direct_chat.pk)

        MessageService.append_message(stale_a.pk, alice, "from alice")
        MessageService.append_message(stale_b.pk, bob, "from bob")

        direct_chat.refresh_from_db()
        contents = list(direct_chat.messages.values_list("content", flat=True))
        assert contents == ["from alice", "from bob"]
        assert direct_chat.message_count == 2
        assert Message.objects.filter(chat=direct_chat).values("sequence").distinct().count() == 2

    def test_storage_outage_is_a_transient_failure(self, direct_chat, alice):
        with mock.patch("chat.services.lock_chat", side_effect=OperationalError("db down")):
            result = MessageService.append_message(direct_chat.pk, alice, "hi")

        assert not result.success
        assert result.error_code == ErrorCode.TRANSIENT_STORAGE_FAILURE

    def test_unexpected_integrity_error_propagates(self, direct_chat, alice):
        with mock.patch(
            "chat.services.MessageReadReceipt.objects.create",
            side_effect=IntegrityError("boom"),
        ):
            with pytest.raises(IntegrityError):
                MessageService.append_message(direct_chat.pk, alice, "hi")


class TestEditMessage:
    """Tests for MessageService.edit_message."""

    def test_sender_can_edit(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "helo").data

        result = MessageService.edit_message(direct_chat.pk, message.pk, alice, "hello")

        assert result.success
        message.refresh_from_db()
        assert message.content == "hello"
        assert message.is_edited
        assert message.edited_at is not None

    def test_other_user_cannot_edit(self, direct_chat, alice, bob):
        message = MessageService.append_message(direct_chat.pk, alice, "mine").data

        result = MessageService.edit_message(direct_chat.pk, message.pk, bob, "yours")

        assert result.error_code == ErrorCode.UNAUTHORIZED
        message.refresh_from_db()
        assert message.content == "mine"

    def test_deleted_message_cannot_be_edited(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "gone").data
        MessageService.delete_message(direct_chat.pk, message.pk, alice)

        result = MessageService.edit_message(direct_chat.pk, message.pk, alice, "back")

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_system_message_cannot_be_edited(self, group_chat, alice):
        message = MessageService.append_message(
            group_chat.pk, alice, "Alice renamed the group", MessageType.SYSTEM
        ).data

        result = MessageService.edit_message(group_chat.pk, message.pk, alice, "changed")

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_empty_content_is_rejected(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "hi").data

        result = MessageService.edit_message(direct_chat.pk, message.pk, alice, "  ")

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_message_of_another_chat_is_not_found(self, direct_chat, group_chat, alice):
        message = MessageService.append_message(group_chat.pk, alice, "hi").data

        result = MessageService.edit_message(direct_chat.pk, message.pk, alice, "moved")

        assert result.error_code == ErrorCode.NOT_FOUND


class TestDeleteMessage:
    """Tests for MessageService.delete_message."""

    def test_sender_can_delete(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "oops").data

        result = MessageService.delete_message(direct_chat.pk, message.pk, alice)

        assert result.success
        message.refresh_from_db()
        assert message.is_deleted
        assert message.deleted_at is not None

    def test_admin_can_delete_any_message(self, group_chat, alice, bob):
        message = MessageService.append_message(group_chat.pk, bob, "spam").data

        result = MessageService.delete_message(group_chat.pk, message.pk, alice)

        assert result.success

    def test_member_cannot_delete_others_message(self, group_chat, alice, bob):
        message = MessageService.append_message(group_chat.pk, alice, "keep").data

        result = MessageService.delete_message(group_chat.pk, message.pk, bob)

        assert result.error_code == ErrorCode.UNAUTHORIZED

    def test_deleting_twice_succeeds_without_new_version(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "oops").data
        MessageService.delete_message(direct_chat.pk, message.pk, alice)
        direct_chat.refresh_from_db()
        version = direct_chat.version

        result = MessageService.delete_message(direct_chat.pk, message.pk, alice)

        assert result.success
        direct_chat.refresh_from_db()
        assert direct_chat.version == version

    def test_last_message_is_not_rewound(self, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "last").data

        MessageService.delete_message(direct_chat.pk, message.pk, alice)

        direct_chat.refresh_from_db()
        assert direct_chat.last_message_id == message.pk
        assert direct_chat.message_count == 1

    def test_unknown_message(self, direct_chat, alice):
        result = MessageService.delete_message(direct_chat.pk, 999999, alice)

        assert result.error_code == ErrorCode.NOT_FOUND


# =============================================================================
# ParticipantService
# =============================================================================


class TestAddParticipant:
    def test_adds_member_with_fresh_watermark(self, group_chat, alice, outsider):
        MessageService.append_message(group_chat.pk, alice, "before you joined")

        result = ParticipantService.add_participant(group_chat.pk, outsider.pk)

        assert result.success
        assert result.data.role == ParticipantRole.MEMBER
        assert result.data.last_read_at == result.data.joined_at

    def test_already_participant(self, group_chat, bob):
        result = ParticipantService.add_participant(group_chat.pk, bob.pk)

        assert result.error_code == ErrorCode.ALREADY_PARTICIPANT

    def test_direct_chat_is_rejected(self, direct_chat, outsider):
        result = ParticipantService.add_participant(direct_chat.pk, outsider.pk)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert direct_chat.participants.count() == 2

    def test_unknown_user(self, group_chat):
        result = ParticipantService.add_participant(group_chat.pk, 999999)

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_unknown_chat(self, outsider):
        result = ParticipantService.add_participant(999999, outsider.pk)

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_invalid_role(self, group_chat, outsider):
        result = ParticipantService.add_participant(group_chat.pk, outsider.pk, role="owner")

        assert result.error_code == ErrorCode.VALIDATION_ERROR


class TestRemoveParticipant:
    @pytest.mark.parametrize("leaver", ["alice", "bob"])
    def test_direct_chat_is_deactivated_when_either_party_leaves(self, direct_chat, request, leaver):
        user = request.getfixturevalue(leaver)

        result = ParticipantService.remove_participant(direct_chat.pk, user.pk)

        assert result.success
        assert result.data.is_active is False

    def test_group_chat_with_remaining_members_stays_active(self, group_chat, bob):
        result = ParticipantService.remove_participant(group_chat.pk, bob.pk)

        assert result.success
        assert result.data.is_active is True
        assert not group_chat.participants.filter(user=bob).exists()

    def test_empty_group_chat_stays_active(self, alice):
        chat = ChatService.create_group_chat([], {"name": "Solo"}, alice).data

        result = ParticipantService.remove_participant(chat.pk, alice.pk)

        assert result.data.is_active is True

    def test_not_participant(self, group_chat, outsider):
        result = ParticipantService.remove_participant(group_chat.pk, outsider.pk)

        assert result.error_code == ErrorCode.NOT_PARTICIPANT

    def test_rejoining_creates_a_new_entry(self, group_chat, bob):
        ParticipantService.remove_participant(group_chat.pk, bob.pk)

        result = ParticipantService.add_participant(group_chat.pk, bob.pk)

        assert result.success
        assert ChatParticipant.objects.filter(chat=group_chat, user=bob).count() == 1


class TestLeaveAsAdmin:
    """
    The only admin of a group may not leave while others remain.

    Why it matters: a group left without an admin can never change its
    roster or roles again.
    """

    def test_only_admin_cannot_leave(self, group_chat, alice):
        result = ParticipantService.remove_participant(group_chat.pk, alice.pk, leaving=True)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert "Promote another member to admin first" in result.error
        assert group_chat.participants.filter(user=alice).exists()

    def test_admin_may_leave_once_another_admin_exists(self, group_chat, alice, bob):
        ParticipantService.update_role(group_chat.pk, bob.pk, ParticipantRole.ADMIN)

        result = ParticipantService.remove_participant(group_chat.pk, alice.pk, leaving=True)

        assert result.success

    def test_last_participant_may_leave(self, alice):
        chat = ChatService.create_group_chat([], {"name": "Solo"}, alice).data

        result = ParticipantService.remove_participant(chat.pk, alice.pk, leaving=True)

        assert result.success

    def test_member_may_leave(self, group_chat, bob):
        assert ParticipantService.remove_participant(group_chat.pk, bob.pk, leaving=True).success

    def test_removal_by_someone_else_is_not_checked(self, group_chat, alice):
        assert ParticipantService.remove_participant(group_chat.pk, alice.pk).success


class TestUpdateRole:
    def test_promotes_member(self, group_chat, bob):
        result = ParticipantService.update_role(group_chat.pk, bob.pk, ParticipantRole.ADMIN)

        assert result.success
        assert group_chat.get_participant(bob).is_admin

    def test_same_role_does_not_bump_version(self, group_chat, bob):
        group_chat.refresh_from_db()
        version = group_chat.version

        ParticipantService.update_role(group_chat.pk, bob.pk, ParticipantRole.MEMBER)

        group_chat.refresh_from_db()
        assert group_chat.version == version

    def test_direct_chat_is_rejected(self, direct_chat, bob):
        result = ParticipantService.update_role(direct_chat.pk, bob.pk, ParticipantRole.ADMIN)

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_not_participant(self, group_chat, outsider):
        result = ParticipantService.update_role(group_chat.pk, outsider.pk, ParticipantRole.ADMIN)

        assert result.error_code == ErrorCode.NOT_PARTICIPANT


class TestSetMuted:
    def test_mute_and_unmute(self, group_chat, bob):
        assert ParticipantService.set_muted(group_chat.pk, bob, True).data.is_muted is True
        assert ParticipantService.set_muted(group_chat.pk, bob, False).data.is_muted is False

    def test_not_participant(self, group_chat, outsider):
        result = ParticipantService.set_muted(group_chat.pk, outsider, True)

        assert result.error_code == ErrorCode.NOT_PARTICIPANT


def test_services_never_raise_for_missing_users(db):
    """Unknown ids come back as results rather than exceptions."""
    user = UserFactory()

    assert ChatService.get_chat(0).error_code == ErrorCode.NOT_FOUND
    assert ParticipantService.remove_participant(0, user.pk).error_code == ErrorCode.NOT_FOUND
