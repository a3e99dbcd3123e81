"""
Base exception classes and error codes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the application
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── NotFoundError - Resource not found
    └── PermissionDeniedError - Acting on a resource the actor may not touch

Error Codes:
    ErrorCode holds the closed set of failure codes returned by the chat and
    direct-message services. The API layer maps them to protocol responses
    (see core.views.service_error_response); services never encode a
    transport status themselves.

Usage:
    from core.exceptions import ErrorCode, NotFoundError

    # Raise with message only
    raise NotFoundError("Chat not found")

    # Raise with a specific error code
    raise PermissionDeniedError(
        "You are not a participant in this chat",
        error_code=ErrorCode.NOT_PARTICIPANT,
    )

    # Convert to dict for API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class ErrorCode:
    """
    Machine-readable failure codes shared by all services.

    NOT_FOUND: Chat, message or user does not exist
    NOT_PARTICIPANT: Actor or target is not on the chat roster
    ALREADY_PARTICIPANT: User is already on the chat roster
    UNAUTHORIZED: Acting on another user's resource
    VALIDATION_ERROR: Empty or malformed input
    TRANSIENT_STORAGE_FAILURE: Storage unavailable; idempotent calls may retry
    """

    NOT_FOUND = "NOT_FOUND"
    NOT_PARTICIPANT = "NOT_PARTICIPANT"
    ALREADY_PARTICIPANT = "ALREADY_PARTICIPANT"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TRANSIENT_STORAGE_FAILURE = "TRANSIENT_STORAGE_FAILURE"


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Provides a consistent interface for error handling across the application.
    All custom exceptions should inherit from this class.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for empty message content, unknown message types, invalid roles and
    other malformed input detected in the service layer.
    """

    default_error_code: str = ErrorCode.VALIDATION_ERROR


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        chat = Chat.objects.filter(pk=chat_id).first()
        if chat is None:
            raise NotFoundError(
                f"Chat {chat_id} not found",
                details={"chat_id": chat_id},
            )
    """

    default_error_code: str = ErrorCode.NOT_FOUND


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the actor may not perform an operation on a resource.

    Use for:
    - Deleting or editing another user's message (UNAUTHORIZED)
    - Acting on a chat the actor is not a participant of (NOT_PARTICIPANT)

    Note:
        Credential failures (missing/invalid token) are handled by the
        authentication layer, never by this exception.
    """

    default_error_code: str = ErrorCode.UNAUTHORIZED

