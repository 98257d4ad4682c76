"""Application-level exception types.

Contention (a held lock, an exhausted rate window) is never an exception: it
is reported through result objects. The types here cover the remaining
failure kinds so the HTTP layer can map them to consistent responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    field: str
    value: Any
    operation: str
    key: str
    retry_after: float
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

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
    """Raised when caller input or policy configuration is invalid."""


class StoreUnavailableError(AppError):
    """Raised when the shared store cannot be reached or fails a command.

    Callers must not treat this as a denial: the outcome of the operation is
    unknown, not negative.
    """
