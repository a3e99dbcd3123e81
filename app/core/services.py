"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities
- storage_operation: Decorator turning storage outages into failure results

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP/WebSocket concerns, models handle data, services
    handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules)
    - Exceptions: Use for unexpected failures (bugs)

Usage:
    from core.exceptions import ErrorCode
    from core.services import BaseService, ServiceResult, storage_operation

    class ChatService(BaseService):
        @classmethod
        @storage_operation
        def get_chat(cls, chat_id: int) -> ServiceResult[Chat]:
            chat = Chat.objects.filter(pk=chat_id).first()
            if chat is None:
                return ServiceResult.failure(
                    "Chat not found",
                    error_code=ErrorCode.NOT_FOUND,
                )
            return ServiceResult.success(chat)

    # In view
    result = ChatService.get_chat(chat_id)
    if result.success:
        return Response(ChatSerializer(result.data).data)
    return service_error_response(result)

Related:
    - core.exceptions: Error codes and the domain exception hierarchy
    - core.views.service_error_response: Error code to HTTP status mapping
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import InterfaceError, OperationalError

from core.exceptions import BaseApplicationError, ErrorCode

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, business rule violations).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code (see core.exceptions.ErrorCode)
        errors: Field-level errors for validation failures

    Usage:
        # Success case
        message = Message.objects.create(chat=chat, sender=user, content=text)
        return ServiceResult.success(message)

        # Failure case
        return ServiceResult.failure("Chat not found", ErrorCode.NOT_FOUND)

        # Validation errors with field details
        return ServiceResult.failure(
            "Validation failed",
            error_code=ErrorCode.VALIDATION_ERROR,
            errors={"content": ["Message content cannot be empty"]}
        )

        # Check result
        result = MessageService.append_message(chat_id, user, "hello")
        if result.success:
            message = result.data
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Returns:
            ServiceResult with success=False and error details

        Example:
            # Simple error
            return ServiceResult.failure("Message not found", ErrorCode.NOT_FOUND)

            # Validation errors
            return ServiceResult.failure(
                "Validation failed",
                error_code=ErrorCode.VALIDATION_ERROR,
                errors={"role": ["Must be one of: admin, member"]}
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own message and error code; any other
        exception falls back to its class name.

        Args:
            exc: The caught exception
            error_code: Optional error code override

        Returns:
            ServiceResult with error details from exception

        Example:
            try:
                chat = lock_chat(chat_id)
            except NotFoundError as e:
                return ServiceResult.from_exception(e)
        """
        if isinstance(exc, BaseApplicationError):
            return cls(
                success=False,
                error=exc.message,
                error_code=error_code or exc.error_code,
                errors=exc.details.get("errors") if exc.details else None,
            )
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns a dictionary suitable for returning from a DRF view.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        """
        Allow using result in boolean context.

        Example:
            result = ChatService.get_chat(chat_id)
            if result:  # Same as: if result.success
                print("Found!")
        """
        return self.success


def storage_operation(func: Callable[..., ServiceResult]) -> Callable[..., ServiceResult]:
    """
    Convert storage outages and domain errors raised by a service method.

    Wraps a service classmethod (apply it below @classmethod):
    - OperationalError / InterfaceError become a TRANSIENT_STORAGE_FAILURE
      result, logged at warning level
    - BaseApplicationError subclasses become a failure result carrying the
      exception's error code, so helpers may raise from inside an atomic
      block and have the transaction rolled back

    Anything else is a bug and propagates.

    Example:
        class MessageService(BaseService):
            @classmethod
            @storage_operation
            def append_message(cls, chat_id, sender, content):
                with transaction.atomic():
                    chat = lock_chat(chat_id)  # may raise NotFoundError
                    ...
    """

    @functools.wraps(func)
    def wrapper(service_cls, *args: Any, **kwargs: Any) -> ServiceResult:
        try:
            return func(service_cls, *args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            service_cls.get_logger().warning(
                "Storage unavailable during %s: %s",
                func.__name__,
                exc,
            )
            return ServiceResult.failure(
                "Storage is temporarily unavailable, please retry",
                error_code=ErrorCode.TRANSIENT_STORAGE_FAILURE,
            )
        except BaseApplicationError as exc:
            return ServiceResult.from_exception(exc)

    return wrapper


class BaseService:
    """
    Base class for service layer classes.

    Provides a per-service logger and required-field validation.

    Usage:
        class ParticipantService(BaseService):
            @classmethod
            def add_participant(cls, chat_id: int, user_id: int) -> ServiceResult:
                with transaction.atomic():
                    chat = Chat.objects.select_for_update().get(pk=chat_id)
                    participant = ChatParticipant.objects.create(...)

                cls.get_logger().info(f"Added user {user_id} to chat {chat_id}")
                return ServiceResult.success(participant)

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def validate_required(cls, **kwargs) -> ServiceResult | None:
        """
        Validate that required fields are provided.

        Returns a failure result if any required field is None or blank.
        Returns None if all fields are valid.

        Example:
            validation = cls.validate_required(content=content)
            if validation is not None:
                return validation
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]

        if errors:
            return ServiceResult.failure(
                "Required fields missing",
                error_code=ErrorCode.VALIDATION_ERROR,
                errors=errors,
            )
        return None
