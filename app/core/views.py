"""
Core views providing infrastructure endpoints and response helpers.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks, plus the
translation of service error codes into HTTP responses shared by every API
view.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import connection
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response

from core.exceptions import ErrorCode

if TYPE_CHECKING:
    from core.services import ServiceResult


# Service error code -> HTTP status
ERROR_STATUS_MAP = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NOT_PARTICIPANT: status.HTTP_403_FORBIDDEN,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.ALREADY_PARTICIPANT: status.HTTP_409_CONFLICT,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TRANSIENT_STORAGE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def service_error_response(result: ServiceResult) -> Response:
    """
    Build a DRF response for a failed ServiceResult.

    Unknown error codes are reported as 400 Bad Request.

    Example:
        result = ChatService.get_chat_for_participant(chat_id, request.user)
        if not result.success:
            return service_error_response(result)
    """
    status_code = ERROR_STATUS_MAP.get(result.error_code, status.HTTP_400_BAD_REQUEST)
    return Response(result.to_response(), status=status_code)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected" (optional)

    HTTP Status Codes:
        200: All systems operational
        503: One or more systems unhealthy
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    # Check database connectivity
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Check cache connectivity
    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        # Cache failure is not critical
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)
