"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures for the two sides of a chat and outsiders
- Chat fixtures (direct and group) built through the service layer
- API client helpers for authenticated requests

Usage:
    def test_example(group_chat, alice_client):
        response = alice_client.get(f"/api/v1/chat/chats/{group_chat.id}/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.models import ParticipantRole
from chat.services import ChatService


def _client_for(user) -> APIClient:
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return UserFactory(username="alice")


@pytest.fixture
def bob(db):
    return UserFactory(username="bob")


@pytest.fixture
def carol(db):
    return UserFactory(username="carol")


@pytest.fixture
def outsider(db):
    """A user who is not on any test chat."""
    return UserFactory(username="outsider")


# =============================================================================
# Chat Fixtures
# =============================================================================


@pytest.fixture
def direct_chat(alice, bob):
    """Direct chat between alice and bob, created through ChatService."""
    return ChatService.create_direct_chat(alice, bob).data


@pytest.fixture
def group_chat(alice, bob, carol):
    """
    Group chat created by alice (admin) with bob and carol as members.
    """
    result = ChatService.create_group_chat(
        participants=[(bob, ParticipantRole.MEMBER), (carol, ParticipantRole.MEMBER)],
        group_info={"name": "Weekend Hike", "related_activity_id": "act-42"},
        created_by=alice,
    )
    return result.data


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def alice_client(alice):
    return _client_for(alice)


@pytest.fixture
def bob_client(bob):
    return _client_for(bob)


@pytest.fixture
def carol_client(carol):
    return _client_for(carol)


@pytest.fixture
def outsider_client(outsider):
    return _client_for(outsider)
