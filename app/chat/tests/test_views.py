"""
Tests for chat API views.

This module tests:
- ChatViewSet: list, create, retrieve, read, leave, mute
- ParticipantViewSet: roster listing and admin-gated changes
- MessageViewSet: paging, send, edit, delete
- Error code to HTTP status mapping

Test Organization:
    - One test class per viewset
    - Clients are authenticated with JWT access tokens
"""

import pytest
from rest_framework import status

from chat.models import Chat, ChatType, ParticipantRole
from chat.services import MessageService

CHATS_URL = "/api/v1/chat/chats/"


def chat_url(chat_id):
    return f"{CHATS_URL}{chat_id}/"


def participants_url(chat_id, user_id=None):
    url = f"{chat_url(chat_id)}participants/"
    return f"{url}{user_id}/" if user_id is not None else url


def messages_url(chat_id, message_id=None):
    url = f"{chat_url(chat_id)}messages/"
    return f"{url}{message_id}/" if message_id is not None else url


class TestAuthentication:
    def test_anonymous_requests_are_rejected(self, api_client, db):
        response = api_client.get(CHATS_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestChatViewSet:
    """Tests for /api/v1/chat/chats/."""

    def test_list_returns_active_chats_with_unread_counts(
        self, alice_client, direct_chat, group_chat, bob
    ):
        MessageService.append_message(direct_chat.pk, bob, "hey alice")

        response = alice_client.get(CHATS_URL)

        assert response.status_code == status.HTTP_200_OK
        results = response.data["results"]
        assert [entry["id"] for entry in results] == [direct_chat.pk, group_chat.pk]
        assert results[0]["unread_count"] == 1
        assert results[0]["last_message"]["content"] == "hey alice"
        assert results[0]["group_info"] is None
        assert results[1]["group_info"]["name"] == "Weekend Hike"

    def test_list_filters_by_type(self, alice_client, direct_chat, group_chat):
        response = alice_client.get(CHATS_URL, {"type": "group"})

        assert [entry["id"] for entry in response.data["results"]] == [group_chat.pk]

    def test_list_rejects_unknown_type(self, alice_client, db):
        response = alice_client.get(CHATS_URL, {"type": "channel"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"

    def test_create_direct_chat_is_idempotent(self, alice_client, bob_client, alice, bob):
        first = alice_client.post(
            CHATS_URL, {"chat_type": "direct", "participant_ids": [bob.pk]}, format="json"
        )
        second = bob_client.post(
            CHATS_URL, {"chat_type": "direct", "participant_ids": [alice.pk]}, format="json"
        )

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_201_CREATED
        assert first.data["id"] == second.data["id"]
        assert Chat.objects.filter(chat_type=ChatType.DIRECT).count() == 1

    def test_create_direct_chat_with_yourself(self, alice_client, alice):
        response = alice_client.post(
            CHATS_URL, {"chat_type": "direct", "participant_ids": [alice.pk]}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_direct_chat_requires_one_participant(self, alice_client, bob, carol):
        response = alice_client.post(
            CHATS_URL,
            {"chat_type": "direct", "participant_ids": [bob.pk, carol.pk]},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "participant_ids" in response.data

    def test_create_with_unknown_participant(self, alice_client, db):
        response = alice_client.post(
            CHATS_URL, {"chat_type": "direct", "participant_ids": [999999]}, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "NOT_FOUND"

    def test_create_group_chat(self, alice_client, alice, bob, carol):
        response = alice_client.post(
            CHATS_URL,
            {
                "chat_type": "group",
                "participant_ids": [bob.pk, carol.pk],
                "name": "Book Club",
                "related_activity_id": "act-7",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["group_info"]["name"] == "Book Club"
        roles = {entry["user"]["id"]: entry["role"] for entry in response.data["participants"]}
        assert roles == {alice.pk: "admin", bob.pk: "member", carol.pk: "member"}

    def test_create_group_chat_requires_name(self, alice_client, bob):
        response = alice_client.post(
            CHATS_URL, {"chat_type": "group", "participant_ids": [bob.pk]}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "name" in response.data

    def test_retrieve(self, bob_client, group_chat):
        response = bob_client.get(chat_url(group_chat.pk))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == group_chat.pk
        assert len(response.data["participants"]) == 3
        assert response.data["unread_count"] == 0

    def test_retrieve_as_outsider_is_forbidden(self, outsider_client, group_chat):
        response = outsider_client.get(chat_url(group_chat.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_PARTICIPANT"

    def test_retrieve_unknown_chat(self, alice_client, db):
        response = alice_client.get(chat_url(999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_read_marks_all_messages(self, bob_client, direct_chat, alice):
        MessageService.append_message(direct_chat.pk, alice, "one")
        MessageService.append_message(direct_chat.pk, alice, "two")

        response = bob_client.post(f"{chat_url(direct_chat.pk)}read/", {}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["marked_count"] == 2
        assert response.data["unread_count"] == 0

    def test_leave_direct_chat_deactivates_it(self, bob_client, direct_chat):
        response = bob_client.post(f"{chat_url(direct_chat.pk)}leave/")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        direct_chat.refresh_from_db()
        assert not direct_chat.is_active

    def test_leave_as_outsider(self, outsider_client, group_chat):
        response = outsider_client.post(f"{chat_url(group_chat.pk)}leave/")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_only_admin_cannot_leave_group(self, alice_client, group_chat, alice):
        response = alice_client.post(f"{chat_url(group_chat.pk)}leave/")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"
        assert "Promote another member to admin first" in response.data["error"]
        assert group_chat.participants.filter(user=alice).exists()

    def test_admin_leaves_after_promoting_member(self, alice_client, group_chat, bob):
        alice_client.patch(participants_url(group_chat.pk, bob.pk), {"role": "admin"}, format="json")

        response = alice_client.post(f"{chat_url(group_chat.pk)}leave/")

        assert response.status_code == status.HTTP_204_NO_CONTENT

    def test_mute(self, bob_client, group_chat):
        response = bob_client.post(f"{chat_url(group_chat.pk)}mute/", {"is_muted": True}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_muted"] is True


class TestParticipantViewSet:
    """Tests for /api/v1/chat/chats/{id}/participants/."""

    def test_list(self, carol_client, group_chat):
        response = carol_client.get(participants_url(group_chat.pk))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 3

    def test_admin_adds_participant(self, alice_client, group_chat, outsider):
        response = alice_client.post(
            participants_url(group_chat.pk), {"user_id": outsider.pk}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["user"]["id"] == outsider.pk
        assert response.data["role"] == ParticipantRole.MEMBER

    def test_member_cannot_add_participant(self, bob_client, group_chat, outsider):
        response = bob_client.post(
            participants_url(group_chat.pk), {"user_id": outsider.pk}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not group_chat.participants.filter(user=outsider).exists()

    def test_adding_existing_participant_conflicts(self, alice_client, group_chat, bob):
        response = alice_client.post(
            participants_url(group_chat.pk), {"user_id": bob.pk}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "ALREADY_PARTICIPANT"

    def test_cannot_add_to_direct_chat(self, alice_client, direct_chat, outsider):
        response = alice_client.post(
            participants_url(direct_chat.pk), {"user_id": outsider.pk}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_changes_role(self, alice_client, group_chat, bob):
        response = alice_client.patch(
            participants_url(group_chat.pk, bob.pk), {"role": "admin"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["role"] == "admin"

    def test_member_cannot_change_role(self, bob_client, group_chat, carol):
        response = bob_client.patch(
            participants_url(group_chat.pk, carol.pk), {"role": "admin"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_member_removes_themself(self, bob_client, group_chat, bob):
        response = bob_client.delete(participants_url(group_chat.pk, bob.pk))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not group_chat.participants.filter(user=bob).exists()

    def test_only_admin_cannot_remove_themself(self, alice_client, group_chat, alice):
        response = alice_client.delete(participants_url(group_chat.pk, alice.pk))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert group_chat.participants.filter(user=alice).exists()

    def test_member_cannot_remove_others(self, bob_client, group_chat, carol):
        response = bob_client.delete(participants_url(group_chat.pk, carol.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_removes_member(self, alice_client, group_chat, carol):
        response = alice_client.delete(participants_url(group_chat.pk, carol.pk))

        assert response.status_code == status.HTTP_204_NO_CONTENT

    def test_removing_non_participant(self, alice_client, group_chat, outsider):
        response = alice_client.delete(participants_url(group_chat.pk, outsider.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_PARTICIPANT"


class TestMessageViewSet:
    """Tests for /api/v1/chat/chats/{id}/messages/."""

    def test_send_message(self, alice_client, direct_chat, alice):
        response = alice_client.post(
            messages_url(direct_chat.pk),
            {"content": "text-1", "client_message_id": "c-1"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["content"] == "text-1"
        assert response.data["sender"]["id"] == alice.pk
        assert response.data["message_type"] == "text"
        assert response.data["read_by"] == [alice.pk]
        assert response.data["sequence"] == 1

    def test_resend_returns_same_message(self, alice_client, direct_chat):
        payload = {"content": "once", "client_message_id": "c-1"}

        first = alice_client.post(messages_url(direct_chat.pk), payload, format="json")
        second = alice_client.post(messages_url(direct_chat.pk), payload, format="json")

        assert first.data["id"] == second.data["id"]

    def test_empty_message_is_rejected(self, alice_client, direct_chat):
        response = alice_client.post(messages_url(direct_chat.pk), {"content": "  "}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"

    def test_outsider_cannot_send(self, outsider_client, direct_chat):
        response = outsider_client.post(messages_url(direct_chat.pk), {"content": "hi"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_send_to_unknown_chat(self, alice_client, db):
        response = alice_client.post(messages_url(999999), {"content": "hi"}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_list_pages_latest_first(self, bob_client, direct_chat, alice):
        for n in range(3):
            MessageService.append_message(direct_chat.pk, alice, f"message {n}")

        response = bob_client.get(messages_url(direct_chat.pk), {"page_size": 2})

        assert response.status_code == status.HTTP_200_OK
        assert [m["content"] for m in response.data["results"]] == ["message 2", "message 1"]
        assert response.data["next"] is not None

        older = bob_client.get(response.data["next"])
        assert [m["content"] for m in older.data["results"]] == ["message 0"]

    def test_list_shows_deleted_placeholder(self, bob_client, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "secret").data
        MessageService.delete_message(direct_chat.pk, message.pk, alice)

        response = bob_client.get(messages_url(direct_chat.pk))

        entry = response.data["results"][0]
        assert entry["content"] == "[Message deleted]"
        assert entry["is_deleted"] is True

    def test_edit_own_message(self, alice_client, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "helo").data

        response = alice_client.patch(
            messages_url(direct_chat.pk, message.pk), {"content": "hello"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["content"] == "hello"
        assert response.data["is_edited"] is True

    def test_edit_others_message_is_forbidden(self, bob_client, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "mine").data

        response = bob_client.patch(
            messages_url(direct_chat.pk, message.pk), {"content": "nope"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "UNAUTHORIZED"

    def test_delete_own_message(self, alice_client, direct_chat, alice):
        message = MessageService.append_message(direct_chat.pk, alice, "oops").data

        response = alice_client.delete(messages_url(direct_chat.pk, message.pk))

        assert response.status_code == status.HTTP_204_NO_CONTENT

    def test_delete_unknown_message(self, alice_client, direct_chat):
        response = alice_client.delete(messages_url(direct_chat.pk, 999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.parametrize(
    "error_code,expected_status",
    [
        ("NOT_FOUND", 404),
        ("NOT_PARTICIPANT", 403),
        ("UNAUTHORIZED", 403),
        ("ALREADY_PARTICIPANT", 409),
        ("VALIDATION_ERROR", 400),
        ("TRANSIENT_STORAGE_FAILURE", 503),
    ],
)
def test_error_codes_map_to_http_status(error_code, expected_status):
    from core.services import ServiceResult
    from core.views import service_error_response

    response = service_error_response(ServiceResult.failure("failed", error_code=error_code))

    assert response.status_code == expected_status
    assert response.data == {"success": False, "error": "failed", "error_code": error_code}
