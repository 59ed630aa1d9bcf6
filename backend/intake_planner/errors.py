"""
Intake Planner error hierarchy.

Every failure the core reports to a caller is an IntakeError subclass carrying
a machine-readable code, the HTTP status the API maps it to, and free-form
context for logging.

Hierarchy:
    IntakeError
    ├── ValidationError           : malformed input, carries per-field detail
    │   └── InvalidArgumentError  : a single argument out of range
    ├── InvalidEnumError          : value outside a closed enum
    ├── NotConfiguredError        : no active priority weights
    ├── NotFoundError             : missing sprint / project / allocation
    ├── DuplicateAllocationError  : (sprint, project) already allocated
    ├── CapacityExceededError     : allocation would overflow the sprint
    ├── HasDependentsError        : sprint still referenced by allocations
    ├── ConflictError             : lost update detected on a versioned row
    ├── StorageError              : persistence failure, original chained
    └── TicketingError            : issue tracker call failed
"""
from typing import Any


class IntakeError(Exception):
    """Base error for all intake planner failures."""

    code: str = "INTAKE_ERROR"
    http_status: int = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: dict[str, Any] = context
        super().__init__(message)

    @property
    def error_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict for responses and logs."""
        return {
            "error_type": self.error_type,
            "code": self.code,
            "message": self.message,
            "context": {
                k: v if isinstance(v, (int, float, bool, type(None))) else str(v)
                for k, v in self.context.items()
            },
        }

    def __repr__(self) -> str:
        return f"{self.error_type}({self.code}): {self.message}"


class ValidationError(IntakeError):
    """
    Input validation failed.

    field_errors maps each offending field to all of its messages, so callers
    can correct every problem in one round trip.
    """

    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, message: str, field_errors: dict[str, list[str]] | None = None, **context: Any):
        self.field_errors: dict[str, list[str]] = field_errors or {}
        super().__init__(message, **context)

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["field_errors"] = self.field_errors
        return d


class InvalidArgumentError(ValidationError):
    code = "INVALID_ARGUMENT"


class InvalidEnumError(IntakeError):
    code = "INVALID_ENUM"
    http_status = 400

    def __init__(self, message: str, **context: Any):
        self.enum_name: str | None = context.get("enum_name")
        self.value: Any = context.get("value")
        super().__init__(message, **context)


class NotConfiguredError(IntakeError):
    code = "NOT_CONFIGURED"
    http_status = 503


class NotFoundError(IntakeError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, message: str, **context: Any):
        self.entity: str | None = context.get("entity")
        self.entity_id: Any = context.get("entity_id")
        super().__init__(message, **context)


class DuplicateAllocationError(IntakeError):
    code = "DUPLICATE_ALLOCATION"
    http_status = 409


class CapacityExceededError(IntakeError):
    """Requested points would push a sprint over its capacity."""

    code = "CAPACITY_EXCEEDED"
    http_status = 409

    def __init__(self, message: str, **context: Any):
        self.capacity_points: int | None = context.get("capacity_points")
        self.requested_total: int | None = context.get("requested_total")
        super().__init__(message, **context)


class HasDependentsError(IntakeError):
    code = "HAS_DEPENDENTS"
    http_status = 409


class ConflictError(IntakeError):
    code = "CONFLICT"
    http_status = 409


class StorageError(IntakeError):
    """Persistence collaborator failed. The driver exception is chained as __cause__."""

    code = "STORAGE_ERROR"
    http_status = 500

    def __init__(self, message: str, **context: Any):
        self.operation: str | None = context.get("operation")
        super().__init__(message, **context)


class TicketingError(IntakeError):
    code = "TICKETING_ERROR"
    http_status = 502

    def __init__(self, message: str, **context: Any):
        self.status_code: int | None = context.get("status_code")
        self.response_body: str | None = context.get("response_body")
        super().__init__(message, **context)
