"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ChatViewSet: Chat creation, lookup and per-user actions
- ParticipantViewSet: Roster management (nested under chat)
- MessageViewSet: Message log operations (nested under chat)

URL Structure:
    /api/v1/chat/chats/                                GET, POST
    /api/v1/chat/chats/{id}/                           GET
    /api/v1/chat/chats/{id}/read/                      POST
    /api/v1/chat/chats/{id}/leave/                     POST
    /api/v1/chat/chats/{id}/mute/                      POST
    /api/v1/chat/chats/{id}/participants/              GET, POST
    /api/v1/chat/chats/{id}/participants/{user_id}/    PATCH, DELETE
    /api/v1/chat/chats/{id}/messages/                  GET, POST
    /api/v1/chat/chats/{id}/messages/{pk}/             PATCH, DELETE

Design Decisions:
    - All operations use the service layer for business logic
    - Service error codes are mapped to HTTP status by
      core.views.service_error_response
    - Admin-only operations are gated here with object permissions on the
      chat; the services themselves don't check roles
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.views import service_error_response
from chat.models import ChatType
from chat.pagination import ChatListPagination, MessageCursorPagination
from chat.permissions import CanRemoveParticipant, IsChatAdmin, IsGroupChat
from chat.read_state import ReadStateService
from chat.serializers import (
    ChatCreateSerializer,
    ChatDetailSerializer,
    ChatListSerializer,
    MarkReadSerializer,
    MessageCreateSerializer,
    MessageEditSerializer,
    MessageSerializer,
    MuteSerializer,
    ParticipantCreateSerializer,
    ParticipantSerializer,
    ParticipantUpdateSerializer,
    ReadStateSerializer,
)
from chat.services import ChatService, MessageService, ParticipantService

User = get_user_model()


class ChatLookupMixin:
    """Resolve the chat of a request for a participant of it."""

    def get_chat_result(self, chat_id):
        result = ChatService.get_chat_for_participant(chat_id, self.request.user)
        if result.success:
            self.check_object_permissions(self.request, result.data)
        return result


@extend_schema_view(
    list=extend_schema(
        operation_id="list_chats",
        summary="List chats",
        tags=["Chat - Chats"],
    ),
    create=extend_schema(
        operation_id="create_chat",
        summary="Create chat",
        request=ChatCreateSerializer,
        responses={201: ChatDetailSerializer},
        tags=["Chat - Chats"],
    ),
    retrieve=extend_schema(
        operation_id="get_chat",
        summary="Get chat",
        tags=["Chat - Chats"],
    ),
)
class ChatViewSet(ChatLookupMixin, viewsets.GenericViewSet):
    """
    ViewSet for chat operations.

    list:
        Get the active chats of the current user, most recent activity
        first, with unread counts and last message preview.
        Optional filter: ?type=direct|group

    create:
        Create a chat.
        For direct: returns the pair's chat if it exists, creates it if not.
        For group: creates a new group with the creator as admin.

    retrieve:
        Get chat details including the roster.

    read:
        Mark messages as read (all messages if message_ids is omitted).

    leave:
        Remove yourself from the chat.

    mute:
        Mute or unmute notifications for the chat.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = ChatListPagination
    lookup_value_regex = r"\d+"

    def get_serializer_class(self):
        if self.action == "list":
            return ChatListSerializer
        if self.action == "create":
            return ChatCreateSerializer
        if self.action == "read":
            return MarkReadSerializer
        if self.action == "mute":
            return MuteSerializer
        return ChatDetailSerializer

    def list(self, request):
        result = ChatService.list_user_chats(request.user, chat_type=request.query_params.get("type"))
        if not result.success:
            return service_error_response(result)

        queryset = result.data.select_related("last_message").prefetch_related(
            "participants__user__profile"
        )
        page = self.paginate_queryset(queryset)
        serializer = ChatListSerializer(page, many=True, context=self.get_serializer_context())
        return self.get_paginated_response(serializer.data)

    def create(self, request):
        """Create a chat (direct or group)."""
        serializer = ChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        participant_ids = [pk for pk in dict.fromkeys(data["participant_ids"]) if pk != request.user.pk]
        users = list(User.objects.filter(pk__in=participant_ids, is_active=True))
        missing = set(participant_ids) - {user.pk for user in users}
        if missing:
            return Response(
                {
                    "success": False,
                    "error": "Unknown participants",
                    "error_code": "NOT_FOUND",
                    "errors": {"participant_ids": [f"Users not found: {sorted(missing)}"]},
                },
                status=status.HTTP_404_NOT_FOUND,
            )

        if data["chat_type"] == ChatType.DIRECT:
            if not users:
                return Response(
                    {
                        "success": False,
                        "error": "Cannot create a direct chat with yourself",
                        "error_code": "VALIDATION_ERROR",
                    },
                    status=status.HTTP_400_BAD_REQUEST,
                )
            result = ChatService.create_direct_chat(request.user, users[0])
        else:
            result = ChatService.create_group_chat(
                participants=users,
                group_info={
                    "name": data.get("name", ""),
                    "description": data.get("description", ""),
                    "avatar": data.get("avatar", ""),
                    "related_activity_id": data.get("related_activity_id", ""),
                },
                created_by=request.user,
            )

        if not result.success:
            return service_error_response(result)

        output_serializer = ChatDetailSerializer(result.data, context={"request": request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        result = self.get_chat_result(pk)
        if not result.success:
            return service_error_response(result)
        return Response(ChatDetailSerializer(result.data, context={"request": request}).data)

    @extend_schema(
        operation_id="mark_chat_read",
        summary="Mark chat as read",
        request=MarkReadSerializer,
        responses={200: ReadStateSerializer},
        tags=["Chat - Chats"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        """Mark messages of the chat as read."""
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ReadStateService.mark_read(
            pk,
            request.user,
            message_ids=serializer.validated_data.get("message_ids"),
        )
        if not result.success:
            return service_error_response(result)

        return Response(ReadStateSerializer(result.data).data)

    @extend_schema(
        operation_id="leave_chat",
        summary="Leave chat",
        request=None,
        responses={204: None},
        tags=["Chat - Chats"],
    )
    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        """Leave the chat."""
        result = ParticipantService.remove_participant(pk, request.user.pk, leaving=True)
        if not result.success:
            return service_error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="mute_chat",
        summary="Mute or unmute chat",
        request=MuteSerializer,
        responses={200: ParticipantSerializer},
        tags=["Chat - Chats"],
    )
    @action(detail=True, methods=["post"])
    def mute(self, request, pk=None):
        serializer = MuteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ParticipantService.set_muted(pk, request.user, serializer.validated_data["is_muted"])
        if not result.success:
            return service_error_response(result)
        return Response(ParticipantSerializer(result.data).data)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_participants",
        summary="List participants",
        tags=["Chat - Participants"],
    ),
    create=extend_schema(
        operation_id="add_participant",
        summary="Add participant",
        request=ParticipantCreateSerializer,
        responses={201: ParticipantSerializer},
        tags=["Chat - Participants"],
    ),
    partial_update=extend_schema(
        operation_id="update_participant_role",
        summary="Update participant role",
        request=ParticipantUpdateSerializer,
        responses={200: ParticipantSerializer},
        tags=["Chat - Participants"],
    ),
    destroy=extend_schema(
        operation_id="remove_participant",
        summary="Remove participant",
        tags=["Chat - Participants"],
    ),
)
class ParticipantViewSet(ChatLookupMixin, viewsets.GenericViewSet):
    """
    ViewSet for roster operations within a chat.

    list:
        Get the roster of the chat.

    create:
        Add a participant to a group chat. Requires admin role.

    partial_update:
        Change a participant's role. Requires admin role.

    destroy:
        Remove a participant. Admins may remove anyone; members only
        themselves.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ParticipantSerializer

    def get_serializer_class(self):
        if self.action == "create":
            return ParticipantCreateSerializer
        if self.action == "partial_update":
            return ParticipantUpdateSerializer
        return ParticipantSerializer

    def get_permissions(self):
        """Return permissions based on action."""
        if self.action == "create":
            return [IsAuthenticated(), IsGroupChat(), IsChatAdmin()]
        if self.action == "partial_update":
            return [IsAuthenticated(), IsGroupChat(), IsChatAdmin()]
        if self.action == "destroy":
            return [IsAuthenticated(), CanRemoveParticipant()]
        return [IsAuthenticated()]

    def list(self, request, chat_pk=None):
        result = self.get_chat_result(chat_pk)
        if not result.success:
            return service_error_response(result)

        participants = result.data.participants.select_related("user__profile")
        return Response(ParticipantSerializer(participants, many=True).data)

    def create(self, request, chat_pk=None):
        """Add a participant to the chat."""
        result = self.get_chat_result(chat_pk)
        if not result.success:
            return service_error_response(result)

        serializer = ParticipantCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ParticipantService.add_participant(
            chat_pk,
            serializer.validated_data["user_id"],
            role=serializer.validated_data["role"],
        )
        if not result.success:
            return service_error_response(result)

        return Response(ParticipantSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, chat_pk=None, user_id=None):
        """Change a participant's role."""
        result = self.get_chat_result(chat_pk)
        if not result.success:
            return service_error_response(result)

        serializer = ParticipantUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ParticipantService.update_role(chat_pk, user_id, serializer.validated_data["role"])
        if not result.success:
            return service_error_response(result)

        return Response(ParticipantSerializer(result.data).data)

    def destroy(self, request, chat_pk=None, user_id=None):
        """Remove a participant from the chat."""
        result = self.get_chat_result(chat_pk)
        if not result.success:
            return service_error_response(result)

        result = ParticipantService.remove_participant(
            chat_pk, user_id, leaving=int(user_id) == request.user.pk
        )
        if not result.success:
            return service_error_response(result)

        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_messages",
        summary="List messages",
        tags=["Chat - Messages"],
    ),
    create=extend_schema(
        operation_id="send_message",
        summary="Send message",
        request=MessageCreateSerializer,
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    ),
    partial_update=extend_schema(
        operation_id="edit_message",
        summary="Edit message",
        request=MessageEditSerializer,
        responses={200: MessageSerializer},
        tags=["Chat - Messages"],
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(ChatLookupMixin, viewsets.GenericViewSet):
    """
    ViewSet for message operations within a chat.

    list:
        Get the chat's message log, latest first.
        Includes soft-deleted messages (content replaced with placeholder).

    create:
        Append a message. Send client_message_id to make retries safe.

    partial_update:
        Edit own message.

    destroy:
        Soft delete a message (own message, or any message as admin).
    """

    permission_classes = [IsAuthenticated]
    pagination_class = MessageCursorPagination

    def get_serializer_class(self):
        if self.action == "create":
            return MessageCreateSerializer
        if self.action == "partial_update":
            return MessageEditSerializer
        return MessageSerializer

    def list(self, request, chat_pk=None):
        result = self.get_chat_result(chat_pk)
        if not result.success:
            return service_error_response(result)

        queryset = result.data.messages.select_related("sender__profile").prefetch_related(
            "read_receipts"
        )
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(MessageSerializer(page, many=True).data)

    def create(self, request, chat_pk=None):
        """Append a message to the chat."""
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = MessageService.append_message(
            chat_pk,
            request.user,
            data.get("content", ""),
            message_type=data["message_type"],
            file_url=data.get("file_url") or None,
            client_message_id=data.get("client_message_id"),
        )
        if not result.success:
            return service_error_response(result)

        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, chat_pk=None, pk=None):
        """Edit a message."""
        result = self.get_chat_result(chat_pk)
        if not result.success:
            return service_error_response(result)

        serializer = MessageEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MessageService.edit_message(
            chat_pk, pk, request.user, serializer.validated_data["content"]
        )
        if not result.success:
            return service_error_response(result)

        return Response(MessageSerializer(result.data).data)

    def destroy(self, request, chat_pk=None, pk=None):
        """Soft delete a message."""
        result = self.get_chat_result(chat_pk)
        if not result.success:
            return service_error_response(result)

        result = MessageService.delete_message(chat_pk, pk, request.user)
        if not result.success:
            return service_error_response(result)

        return Response(status=status.HTTP_204_NO_CONTENT)
