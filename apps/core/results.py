"""
Tagged result types shared by the workflow engine and the API layer.

Engine operations never raise for expected failures. They return either
``Ok(value)`` or ``Err(ServiceError)`` and callers branch on ``result.ok``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from django.db import models


T = TypeVar("T")


class ErrorCode(models.TextChoices):
    UNAUTHORIZED = "UNAUTHORIZED", "Unauthorized"
    INVALID_REQUEST = "INVALID_REQUEST", "Invalid request"
    INVALID_ACTION = "INVALID_ACTION", "Invalid action"
    INVALID_PARAMETERS = "INVALID_PARAMETERS", "Invalid parameters"
    TOO_MANY_SHIFTS = "TOO_MANY_SHIFTS", "Too many shifts"
    INVALID_TRANSITION = "INVALID_TRANSITION", "Invalid transition"
    SHIFT_NOT_FOUND = "SHIFT_NOT_FOUND", "Shift not found"
    NOT_FOUND = "NOT_FOUND", "Not found"
    DATABASE_ERROR = "DATABASE_ERROR", "Database error"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR", "Internal server error"


# HTTP status used when an error reaches the API boundary.
HTTP_STATUS_BY_CODE = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.INVALID_ACTION: 400,
    ErrorCode.INVALID_PARAMETERS: 400,
    ErrorCode.TOO_MANY_SHIFTS: 400,
    ErrorCode.INVALID_TRANSITION: 409,
    ErrorCode.SHIFT_NOT_FOUND: 404,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.INTERNAL_SERVER_ERROR: 500,
}


@dataclass(frozen=True)
class ServiceError:
    """A structured, client-safe failure."""
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE.get(self.code, 500)

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": str(self.code), "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: ServiceError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def fail(code: str, message: str, **details: Any) -> Err:
    """Shorthand for ``Err(ServiceError(code, message, details))``."""
    return Err(ServiceError(code=code, message=message, details=details))
