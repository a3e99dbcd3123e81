"""
WebSocket consumers for the chat application.

This module implements the WebSocket consumers for real-time chat
functionality: connection management, forwarding of fan-out events, and
client frames routed into the chat service layer.

Consumers:
    ChatConsumer: Live view of one chat (ws/chat/<chat_id>/)
    InboxConsumer: Per-user inbox for direct messages (ws/inbox/)

Authentication:
    Users are authenticated via JWT (see chat.middleware.JWTAuthMiddleware),
    which attaches the user to self.scope["user"].

Channel Groups:
    Each chat has a channel group named "chat_{chat_id}"; each user has an
    inbox group named "user_{user_id}". Services publish to these groups
    after commit (see chat.events).

Message Types (from client):
    - message: Append a message to the chat
    - typing: Broadcast typing indicator
    - read: Mark messages as read

Message Types (to client):
    - event: Fan-out event {"chat_id", "kind", "payload"}
    - ack: Result of the client's own message/read frame
    - error: Error response with error_code

Close Codes:
    4001: Not authenticated
    4003: Not a participant of the chat
    4004: Chat not found
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from chat.constants import CHANNEL_GROUPS, EVENT_KIND
from chat.events import message_payload
from chat.models import Chat, ChatParticipant
from chat.read_state import ReadStateService
from chat.serializers import MarkReadSerializer, MessageCreateSerializer
from chat.services import MessageService

logger = logging.getLogger(__name__)

CLOSE_UNAUTHENTICATED = 4001
CLOSE_NOT_PARTICIPANT = 4003
CLOSE_NOT_FOUND = 4004


def _is_authenticated(user) -> bool:
    return bool(user) and not isinstance(user, AnonymousUser)


def _accepted_subprotocol(scope) -> str | None:
    # Browsers drop the handshake unless the offered "jwt" subprotocol is echoed.
    return "jwt" if "jwt" in scope.get("subprotocols", []) else None


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for a single chat.

    Handles:
        - Connection authentication and roster check
        - Joining/leaving the chat's channel group
        - Appending messages, typing indicators, read marks

    Attributes:
        chat_id: Id of the connected chat
        room_group_name: Channel layer group name for the chat
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.chat_id: int | None = None
        self.room_group_name: str | None = None

    async def connect(self):
        """
        Handle WebSocket connection.

        Validates:
            1. User is authenticated
            2. Chat exists
            3. User is on the chat's roster

        On success, joins the channel group and accepts the connection.
        """
        self.chat_id = self.scope["url_route"]["kwargs"]["chat_id"]
        user = self.scope.get("user")

        if not _is_authenticated(user):
            logger.warning(f"Rejected unauthenticated connection to chat {self.chat_id}")
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        if not await self._chat_exists():
            logger.warning(f"User {user.id} tried to connect to non-existent chat {self.chat_id}")
            await self.close(code=CLOSE_NOT_FOUND)
            return

        if not await self._is_user_participant(user):
            logger.warning(f"User {user.id} is not a participant in chat {self.chat_id}")
            await self.close(code=CLOSE_NOT_PARTICIPANT)
            return

        self.room_group_name = CHANNEL_GROUPS.for_chat(self.chat_id)
        await self.channel_layer.group_add(self.room_group_name, self.channel_name)
        await self.accept(subprotocol=_accepted_subprotocol(self.scope))
        logger.info(f"User {user.id} connected to chat {self.chat_id}")

    async def disconnect(self, close_code):
        """Leave the channel group if one was joined."""
        if self.room_group_name:
            await self.channel_layer.group_discard(self.room_group_name, self.channel_name)
            user = self.scope.get("user")
            user_id = user.id if _is_authenticated(user) else "anonymous"
            logger.info(f"User {user_id} disconnected from chat {self.chat_id} ({close_code})")

    async def receive_json(self, content, **kwargs):
        """
        Handle incoming WebSocket frames.

        Expected frame format:
            {"type": "message", "content": "Hello!", "client_message_id": "c1"}
            {"type": "message", "message_type": "image", "file_url": "...", "content": ""}
            {"type": "typing", "is_typing": true}
            {"type": "read"}
            {"type": "read", "message_ids": [3, 4]}
        """
        frame_type = content.get("type")
        user = self.scope["user"]

        if frame_type == "message":
            await self._handle_message(user, content)
        elif frame_type == "typing":
            await self._handle_typing(user, content)
        elif frame_type == "read":
            await self._handle_read(user, content)
        else:
            await self.send_json(
                {
                    "type": "error",
                    "error_code": "VALIDATION_ERROR",
                    "message": f"Unknown message type: {frame_type}",
                }
            )

    async def _handle_message(self, user, content):
        """
        Append a message through MessageService.

        The sender gets an ack; everyone (the sender included) receives the
        message.created event once the append commits.
        """
        serializer = MessageCreateSerializer(data=content)
        if not serializer.is_valid():
            await self._send_validation_error(serializer.errors)
            return

        result = await self._append_message(user, serializer.validated_data)
        if not result["success"]:
            await self._send_error(result)
            return

        await self.send_json(
            {
                "type": "ack",
                "action": "message",
                "client_message_id": content.get("client_message_id"),
                "message": result["data"],
            }
        )

    async def _handle_typing(self, user, content):
        """Broadcast typing status to the other participants (not persisted)."""
        await self.channel_layer.group_send(
            self.room_group_name,
            {
                "type": "chat.event",
                "event": {
                    "chat_id": self.chat_id,
                    "kind": EVENT_KIND.TYPING,
                    "payload": {
                        "user_id": user.id,
                        "is_typing": bool(content.get("is_typing", False)),
                    },
                },
            },
        )

    async def _handle_read(self, user, content):
        serializer = MarkReadSerializer(data=content)
        if not serializer.is_valid():
            await self._send_validation_error(serializer.errors)
            return

        result = await self._mark_read(user, serializer.validated_data.get("message_ids"))
        if not result["success"]:
            await self._send_error(result)
            return

        await self.send_json({"type": "ack", "action": "read", **result["data"]})

    async def _send_error(self, result: dict):
        await self.send_json(
            {
                "type": "error",
                "error_code": result["error_code"],
                "message": result["error"],
            }
        )

    async def _send_validation_error(self, errors):
        await self.send_json(
            {
                "type": "error",
                "error_code": "VALIDATION_ERROR",
                "message": "Invalid frame",
                "errors": errors,
            }
        )

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Typing indicators are not echoed back to the typing user. When the
        connected user is removed from the roster, the removal event is
        delivered and the socket is closed.
        """
        data = event["event"]
        user = self.scope.get("user")
        kind = data.get("kind")
        if kind == EVENT_KIND.TYPING and data["payload"].get("user_id") == user.id:
            return

        await self.send_json({"type": "event", **data})

        if kind == EVENT_KIND.PARTICIPANT_REMOVED and data["payload"].get("user_id") == user.id:
            await self.channel_layer.group_discard(self.room_group_name, self.channel_name)
            self.room_group_name = None
            logger.info(f"User {user.id} removed from chat {self.chat_id}, closing socket")
            await self.close(code=CLOSE_NOT_PARTICIPANT)

    @database_sync_to_async
    def _chat_exists(self) -> bool:
        return Chat.objects.filter(pk=self.chat_id).exists()

    @database_sync_to_async
    def _is_user_participant(self, user) -> bool:
        """Check if user is on the chat's roster."""
        return ChatParticipant.objects.filter(chat_id=self.chat_id, user=user).exists()

    @database_sync_to_async
    def _append_message(self, user, data: dict) -> dict:
        """
        Append a validated message frame using MessageService.

        Returns dict with success status and either data or error.
        """
        result = MessageService.append_message(
            chat_id=self.chat_id,
            sender=user,
            content=data["content"],
            message_type=data["message_type"],
            file_url=data.get("file_url") or None,
            client_message_id=data.get("client_message_id"),
        )
        if result.success:
            return {"success": True, "data": message_payload(result.data)}
        return {"success": False, "error": result.error, "error_code": result.error_code}

    @database_sync_to_async
    def _mark_read(self, user, message_ids) -> dict:
        result = ReadStateService.mark_read(self.chat_id, user, message_ids=message_ids)
        if result.success:
            state = result.data
            return {
                "success": True,
                "data": {
                    "marked_count": state.marked_count,
                    "unread_count": state.unread_count,
                    "last_read_at": state.last_read_at.isoformat(),
                },
            }
        return {"success": False, "error": result.error, "error_code": result.error_code}


class InboxConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for a user's inbox.

    Receives events addressed to the user rather than to one chat, such as
    new direct messages. Read-only: client frames are ignored.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.group_name: str | None = None

    async def connect(self):
        user = self.scope.get("user")
        if not _is_authenticated(user):
            await self.close(code=CLOSE_UNAUTHENTICATED)
            return

        self.group_name = CHANNEL_GROUPS.for_user(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept(subprotocol=_accepted_subprotocol(self.scope))
        logger.info(f"User {user.id} connected to inbox")

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def chat_event(self, event):
        await self.send_json({"type": "event", **event["event"]})
