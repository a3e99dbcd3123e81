"""
Permission classes for chat API.

This module provides DRF permission classes for the chat system:
- IsChatAdmin: User has the ADMIN role in the chat
- IsGroupChat: The chat is a group chat
- CanRemoveParticipant: Admins remove anyone, members only themselves

Permission Rules:
    ADMIN can:
        - All MEMBER permissions
        - Add participants
        - Change participant roles
        - Remove other participants
        - Delete any message

    MEMBER can:
        - View the chat
        - Send messages
        - Edit and delete own messages
        - Leave the chat

Design Decisions:
    - Object permissions are checked against the Chat resolved by the view
    - Roster membership itself is checked by the services (NOT_PARTICIPANT)
    - Message ownership rules live in MessageService
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from chat.models import Chat, ChatParticipant, ParticipantRole

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsChatAdmin(permissions.BasePermission):
    """
    Allows access only to chat admins.

    Used for management operations:
    - Adding participants
    - Changing participant roles
    """

    message = "Only chat admins can perform this action."

    def has_object_permission(self, request: Request, view: APIView, obj: Chat) -> bool:
        if not request.user.is_authenticated:
            return False

        return ChatParticipant.objects.filter(
            chat=obj,
            user=request.user,
            role=ParticipantRole.ADMIN,
        ).exists()


class IsGroupChat(permissions.BasePermission):
    """Allows access only if the chat is a group chat."""

    message = "This action is only available for group chats."

    def has_object_permission(self, request: Request, view: APIView, obj: Chat) -> bool:
        return obj.is_group


class CanRemoveParticipant(permissions.BasePermission):
    """
    Permission for removing a participant.

    The target user id is read from the view's user_id URL kwarg.
    A user may always remove themself (leave); removing someone else
    requires the admin role.
    """

    message = "Only chat admins can remove other participants."

    def has_object_permission(self, request: Request, view: APIView, obj: Chat) -> bool:
        if not request.user.is_authenticated:
            return False

        target_user_id = view.kwargs.get("user_id")
        if target_user_id is not None and int(target_user_id) == request.user.pk:
            return True

        return IsChatAdmin().has_object_permission(request, view, obj)
