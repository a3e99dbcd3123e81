"""
Chat app for real-time messaging.

This app handles:
- Chats (direct and group) and their rosters
- Message log append, edit and soft delete
- Read receipts and unread counts
- WebSocket real-time updates and typing indicators

Related apps:
    - authentication: User model for participants
    - directmessages: Flat 1:1 messages outside the chat aggregate

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import ChatService, MessageService

    # Create or fetch the direct chat of two users
    chat = ChatService.create_direct_chat(user, other_user).data

    # Send message
    message = MessageService.append_message(
        chat_id=chat.id,
        sender=user,
        content="Hello!",
    ).data
"""
