"""
Custom exception handling for API.
"""
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.exceptions import (
    AuthenticationFailed,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    Throttled,
    ValidationError,
)
from django.http import Http404
import logging

logger = logging.getLogger("api")

ERROR_CODES = [
    (ValidationError, "validation_error"),
    (NotAuthenticated, "not_authenticated"),
    (AuthenticationFailed, "authentication_failed"),
    (PermissionDenied, "permission_denied"),
    (NotFound, "not_found"),
    (Http404, "not_found"),
    (Throttled, "throttled"),
]


def custom_exception_handler(exc, context):
    """
    Custom exception handler for DRF.

    Logs API errors and tags the response body with a stable error_code.

    Args:
        exc: Exception instance
        context: Context dict with view and request info

    Returns:
        Response object with error details
    """
    response = drf_exception_handler(exc, context)

    if response is not None:
        request = context.get("request")
        view = context.get("view")

        log_data = {
            "status_code": response.status_code,
            "error": str(exc),
            "path": request.path if request else None,
            "method": request.method if request else None,
            "view": view.__class__.__name__ if view else None,
        }

        if response.status_code >= 500:
            logger.error(f"API Server Error: {log_data}")
        elif response.status_code >= 400:
            logger.warning(f"API Client Error: {log_data}")

        # List-shaped validation errors are wrapped so error_code can be attached
        if not isinstance(response.data, dict):
            response.data = {"errors": response.data}

        for exc_class, code in ERROR_CODES:
            if isinstance(exc, exc_class):
                response.data["error_code"] = code
                break

    return response
