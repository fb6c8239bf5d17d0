"""Error Hierarchy — typed, categorized exceptions for every batch lifecycle failure.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400/404/409) leave the batch untouched; infrastructure errors are 503
    - to_response() produces the REST failure envelope (always "success": false)
    - ItemFailure is the only shape a bulk operation uses to report one failed entry

Design Decisions:
    - Single hierarchy with CompostingError base: FastAPI global handler catches all
    - ItemFailure is a value object, not an exception: bulk runs collect, never raise
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    INVALID_STATE = "invalid_state"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PERSISTENCE = "persistence"
    CONFLICT = "conflict"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = None
    batch_code: str | None = None
    facility_code: str | None = None
    debug_info: dict[str, Any] | None = None


class CompostingError(Exception):
    """Base exception for all composting belt errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST failure envelope."""
        return {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "request_id": self.context.request_id,
                    "batch_code": self.context.batch_code,
                    "facility_code": self.context.facility_code,
                },
            },
        }


# ─── Domain Errors ──────────────────────────────────────────────

class DomainValidationError(CompostingError):
    """Input violates a domain precondition (mass, rate, station range)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class InvalidStateError(CompostingError):
    """Transition not allowed from the batch's current state."""
    def __init__(
        self, message: str, current_state: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "INVALID_STATE", ErrorCategory.INVALID_STATE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.current_state = current_state


class ResourceNotFoundError(CompostingError):
    """Requested resource does not exist or is tombstoned."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConcurrencyError(CompostingError):
    """Concurrent modification detected by the batch version guard."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Infrastructure Errors ──────────────────────────────────────

class PersistenceError(CompostingError):
    """Registry read/write failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "PERSISTENCE_ERROR", ErrorCategory.PERSISTENCE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


# ─── Bulk item failures ─────────────────────────────────────────

@dataclass(frozen=True)
class ItemFailure:
    """One failed entry of a bulk advance or restoration mapping."""
    batch_code: str
    error: str
    code: str = "ITEM_FAILED"

    @classmethod
    def from_error(cls, batch_code: str, exc: CompostingError) -> "ItemFailure":
        return cls(batch_code=batch_code, error=exc.message, code=exc.code)

    def to_dict(self) -> dict:
        return {"batch_code": self.batch_code, "error": self.error, "code": self.code}
