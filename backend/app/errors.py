"""Domain error taxonomy for the booking core.

Every error carries the parameters of the rejected request so the caller can
render an actionable message ("slot unavailable" vs "insufficient permission").
"""
from typing import Any


class BookingError(Exception):
    """Base class — `kind` is the stable machine-readable error name."""

    kind = "booking_error"
    status_code = 400

    def __init__(self, message: str, **params: Any):
        super().__init__(message)
        self.message = message
        self.params = params

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "params": {k: _jsonable(v) for k, v in self.params.items()},
        }


class ValidationError(BookingError):
    """Malformed input: bad time range, missing weekday set, closed facility..."""

    kind = "validation_error"
    status_code = 422


class ConflictError(BookingError):
    """The requested slot overlaps an existing pending/confirmed booking."""

    kind = "conflict"
    status_code = 409


class InvalidStateError(BookingError):
    """Transition attempted from a non-eligible state."""

    kind = "invalid_state"
    status_code = 400


class PermissionDeniedError(BookingError):
    """Actor lacks the required role or scope."""

    kind = "permission_denied"
    status_code = 403


class NotFoundError(BookingError):
    kind = "not_found"
    status_code = 404


def _jsonable(value: Any) -> Any:
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
