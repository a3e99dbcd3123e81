"""
Views for direct messages API.

URL Structure:
    /api/v1/dm/conversation/{user_id}/   GET     Messages with a user
    /api/v1/dm/send/                     POST    Send a message
    /api/v1/dm/read/{sender_id}/         PUT     Mark a sender's messages read
    /api/v1/dm/unread/count/             GET     Unread count
    /api/v1/dm/recent/                   GET     Recent conversations
    /api/v1/dm/{message_id}/             DELETE  Delete own message
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema, inline_serializer
from rest_framework import serializers, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import service_error_response
from directmessages.serializers import (
    DirectMessageSerializer,
    RecentConversationSerializer,
    SendDirectMessageSerializer,
)
from directmessages.services import DirectMessageService, RecentConversationService


class ConversationView(APIView):
    """Messages exchanged with another user, oldest first."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_direct_conversation",
        summary="Get conversation with a user",
        responses={200: DirectMessageSerializer(many=True)},
        tags=["Direct Messages"],
    )
    def get(self, request, user_id):
        result = DirectMessageService.get_conversation(request.user, user_id)
        if not result.success:
            return service_error_response(result)
        return Response(DirectMessageSerializer(result.data, many=True).data)


class SendDirectMessageView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="send_direct_message",
        summary="Send a direct message",
        request=SendDirectMessageSerializer,
        responses={201: DirectMessageSerializer},
        tags=["Direct Messages"],
    )
    def post(self, request):
        serializer = SendDirectMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = DirectMessageService.send(
            request.user,
            serializer.validated_data["to"],
            serializer.validated_data["text"],
        )
        if not result.success:
            return service_error_response(result)

        return Response(DirectMessageSerializer(result.data).data, status=status.HTTP_201_CREATED)


class MarkReadView(APIView):
    """Mark all messages from a sender to the current user as read."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="mark_direct_messages_read",
        summary="Mark messages from a user as read",
        request=None,
        responses={
            200: inline_serializer(
                "MarkDirectMessagesReadResponse",
                {"success": serializers.BooleanField(), "modified_count": serializers.IntegerField()},
            )
        },
        tags=["Direct Messages"],
    )
    def put(self, request, sender_id):
        result = DirectMessageService.mark_as_read(request.user, sender_id)
        if not result.success:
            return service_error_response(result)
        return Response({"success": True, "modified_count": result.data})


class UnreadCountView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_direct_unread_count",
        summary="Count unread direct messages",
        responses={
            200: inline_serializer(
                "DirectUnreadCountResponse", {"unread_count": serializers.IntegerField()}
            )
        },
        tags=["Direct Messages"],
    )
    def get(self, request):
        return Response({"unread_count": DirectMessageService.get_unread_count(request.user)})


class RecentConversationsView(APIView):
    """Latest message per counterpart, newest first, with unread counts."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_recent_direct_conversations",
        summary="List recent conversations",
        responses={200: RecentConversationSerializer(many=True)},
        tags=["Direct Messages"],
    )
    def get(self, request):
        result = RecentConversationService.get_recent_conversations(request.user)
        if not result.success:
            return service_error_response(result)
        return Response(RecentConversationSerializer(result.data, many=True).data)


class DeleteDirectMessageView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="delete_direct_message",
        summary="Delete a direct message",
        responses={204: None},
        tags=["Direct Messages"],
    )
    def delete(self, request, message_id):
        result = DirectMessageService.soft_delete(message_id, request.user)
        if not result.success:
            return service_error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)
