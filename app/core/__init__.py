"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by the domain apps
(chat, directmessages):

- Generic, reusable base classes (no domain-specific logic)
- Clear extension points for domain apps
- Infrastructure concerns separated from business logic

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling
    - storage_operation: Storage outage / domain error conversion

Managers (import from core.managers):
    - SoftDeleteManager: Filter deleted records by default
    - SoftDeleteQuerySet: QuerySet with soft delete operations

Exceptions (import from core.exceptions):
    - ErrorCode: Closed set of service failure codes
    - BaseApplicationError: Base exception with error codes
    - ValidationError, NotFoundError, PermissionDeniedError

Views (import from core.views):
    - health_check: Liveness endpoint
    - service_error_response: Error code to HTTP status mapping

Note:
    - Business logic should NOT go here. Extend core classes in your domain apps.
    - Django models and model mixins are NOT imported here to avoid AppRegistryNotReady
      errors. Import them directly from their modules.
"""

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ErrorCode,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult, storage_operation

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    "storage_operation",
    # Exceptions
    "ErrorCode",
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
]
