"""Error taxonomy for the availability and booking engine.

Engine operations raise subclasses of BookingError. Callers that need a
serializable payload (HTTP handlers, the CLI) convert them with
ErrorDetail.from_exception().
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorType(str, Enum):
    """Types of errors the engine can surface."""

    NOT_FOUND = "not_found"  # Unknown tenant, resource, service or appointment
    VALIDATION_ERROR = "validation_error"  # Malformed input, invalid transition
    CONFLICT = "conflict"  # Slot taken by a concurrent booking
    STORE_ERROR = "store_error"  # Transient persistence failure
    UNKNOWN_ERROR = "unknown_error"  # Catch-all


class BookingError(Exception):
    """Base class for engine errors."""

    error_type: ErrorType = ErrorType.UNKNOWN_ERROR
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(BookingError):
    """A tenant, resource, service or appointment does not exist."""

    error_type = ErrorType.NOT_FOUND


class BookingValidationError(BookingError):
    """Malformed date/time input or missing required fields."""

    error_type = ErrorType.VALIDATION_ERROR


class ConflictError(BookingError):
    """The requested interval overlaps a blocking appointment."""

    error_type = ErrorType.CONFLICT


class StoreError(BookingError):
    """Persistence failure. Only idempotent reads may be retried."""

    error_type = ErrorType.STORE_ERROR
    retryable = True


class ErrorDetail(BaseModel):
    """Structured error information for API and CLI output."""

    type: ErrorType = Field(description="Category of error")
    message: str = Field(description="Human-readable error message")
    operation: str = Field(description="Engine operation that failed")
    timestamp: datetime = Field(default_factory=datetime.now)
    retryable: bool = Field(default=False, description="Whether the caller may retry")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional error context")

    @classmethod
    def from_exception(cls, e: Exception, operation: str) -> "ErrorDetail":
        """Create an ErrorDetail from an exception.

        Args:
            e: The exception that occurred
            operation: Name of the operation that raised it

        Returns:
            ErrorDetail instance
        """
        if isinstance(e, BookingError):
            return cls(
                type=e.error_type,
                message=e.message,
                operation=operation,
                retryable=e.retryable,
                details={"exception_type": type(e).__name__, **e.details},
            )

        return cls(
            type=ErrorType.UNKNOWN_ERROR,
            message=str(e),
            operation=operation,
            retryable=False,
            details={"exception_type": type(e).__name__},
        )
