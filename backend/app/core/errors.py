"""
Error taxonomy for the engagement workflow.

Services raise the most specific kind that applies. The HTTP layer maps
``ErrorKind`` to a status code in one place (see ``app.main``), so nothing in
``services/`` knows about transport-level codes.
"""
from __future__ import annotations

import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    BAD_REQUEST = "BAD_REQUEST"
    VALIDATION = "VALIDATION"
    INTERNAL = "INTERNAL"


class EngagementError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    default_message = "Unexpected error"

    def __init__(
        self,
        message: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.kind.value,
            "detail": self.message,
            "errors": self.details,
        }


class NotFoundError(EngagementError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"

    @classmethod
    def for_resource(cls, resource: str) -> "NotFoundError":
        return cls(f"{resource} not found")


class ForbiddenError(EngagementError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Access denied"


class ConflictError(EngagementError):
    kind = ErrorKind.CONFLICT
    default_message = "Conflicting record exists"


class BadRequestError(EngagementError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Invalid request"


class ValidationFailedError(EngagementError):
    kind = ErrorKind.VALIDATION
    default_message = "Validation failed"

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationFailedError":
        """Flatten a pydantic ``ValidationError`` into ``[{field, message}]``."""
        details = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
            details.append({"field": field, "message": err.get("msg", "invalid")})
        return cls(details=details)


class InternalError(EngagementError):
    kind = ErrorKind.INTERNAL
    default_message = "Internal server error"


class StoreError(InternalError):
    default_message = "Record store operation failed"


class DuplicateRecordError(StoreError):
    """A unique constraint rejected the write."""

    default_message = "Duplicate record"
