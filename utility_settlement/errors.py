"""Error taxonomy shared by the services and the HTTP layer."""

from typing import Any, Dict

from fastapi import status


class SettlementError(Exception):
    """Base application error.

    Carries a machine readable ``code``, the HTTP status the API layer answers
    with, and a ``context`` dict naming the entity and violated constraint.
    """

    code = "error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        http_status: int | None = None,
        **context: Any,
    ):
        """Initialize error."""
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.context = context
        super().__init__(message)


class Unauthorized(SettlementError):
    """No resolved caller identity."""

    code = "unauthorized"
    http_status = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized", **context: Any):
        super().__init__(message, **context)


class NotFound(SettlementError):
    """Entity missing or owned by someone else (ownership is not disclosed)."""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any, message: str | None = None, **context: Any):
        super().__init__(
            message or f"{entity.replace('_', ' ').capitalize()} not found",
            entity=entity,
            entity_id=entity_id,
            **context,
        )


class ValidationError(SettlementError):
    """Malformed input."""

    code = "validation_error"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidRange(ValidationError):
    """Period start is not before period end."""

    code = "invalid_range"

    def __init__(self, period_start: Any, period_end: Any):
        super().__init__(
            "period_start must be before period_end",
            period_start=str(period_start),
            period_end=str(period_end),
        )


class InvalidState(SettlementError):
    """Operation not permitted in the entity's current lifecycle state."""

    code = "invalid_state"
    http_status = status.HTTP_409_CONFLICT


class Conflict(SettlementError):
    """Concurrent mutation collision."""

    code = "conflict"
    http_status = status.HTTP_409_CONFLICT


def error_response(error: SettlementError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
            "context": error.context,
        }
    }


__all__ = [
    "SettlementError",
    "Unauthorized",
    "NotFound",
    "ValidationError",
    "InvalidRange",
    "InvalidState",
    "Conflict",
    "error_response",
]
