"""Application-level exception types.

Errors raised by the duration parser and by key-value store implementations
share one dataclass-based hierarchy so the HTTP layer (and any other caller)
can map them to responses and log them consistently.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    key: str
    duration: str
    unit: str
    http_status: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for limiter failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class InvalidDurationError(ValidationAppError):
    """Raised when a duration expression is empty, not a string or malformed."""


class UnrecognizedUnitError(InvalidDurationError):
    """Raised when a duration magnitude parses but its unit is unknown."""


class StoreAppError(AppError):
    """Raised by key-value store implementations."""


class NonNumericValueError(StoreAppError):
    """Raised when a counter key holds a value that is not an integer."""
