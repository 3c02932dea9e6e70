"""
REST framework exception handler.

Every error leaves the API in the same shape::

    {"error": {"code": "INVALID_REQUEST", "message": "...", "details": {...}}}

Unexpected exceptions are logged and reported as a generic
INTERNAL_SERVER_ERROR so that no internals leak to the client.
"""

import logging

from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

from .results import ErrorCode, ServiceError


logger = logging.getLogger(__name__)


def error_response(error: ServiceError, status: int | None = None) -> Response:
    """Render a ServiceError as an API response."""
    return Response({"error": error.as_dict()}, status=status or error.http_status)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception("Unhandled error in %s", type(view).__name__ if view else "API view")
        set_rollback()
        return error_response(
            ServiceError(
                code=ErrorCode.INTERNAL_SERVER_ERROR,
                message="An unexpected error occurred",
            )
        )

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        code = ErrorCode.UNAUTHORIZED
        message = str(exc.detail)
        details = {}
    elif isinstance(exc, (exceptions.ValidationError, exceptions.ParseError)):
        code = ErrorCode.INVALID_REQUEST
        message = "Request body is invalid"
        details = {"fields": response.data} if isinstance(exc, exceptions.ValidationError) else {}
    elif response.status_code == 404:
        code = ErrorCode.NOT_FOUND
        message = str(response.data.get("detail", "Not found."))
        details = {}
    else:
        code = getattr(exc, "default_code", "error").upper()
        message = str(response.data.get("detail", "")) if isinstance(response.data, dict) else ""
        details = {}

    response.data = {"error": ServiceError(code=code, message=message, details=details).as_dict()}
    return response
