"""
Authentication application.

This app provides the identity records the chat system relies on.

Key components:
    - User model: Custom email-based user authentication
    - Profile model: Public username and avatar

Tokens are verified with SimpleJWT (HTTP) and chat.middleware (WebSocket).

Usage:
    from authentication.models import User, Profile
"""
