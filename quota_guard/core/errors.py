"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional; store keys never appear here in clear text, only
    their hash.
    """

    code: str
    message: str
    hint: str
    limit_type: str
    allowed_types: list[str]
    operation: str
    key_hash: str
    timeout_seconds: float
    backend: str
    request_id: str
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
    """Raised when input/config validation fails."""


class InvalidLimitTypeError(ValidationAppError):
    """Raised when a limit class other than 'ip' or 'token' is requested."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


@dataclass
class StoreAppError(AppError):
    """Raised when a counter store operation fails.

    Attributes:
        operation: Store operation that failed (exists, increment, set, ...).
        key: Store key the operation targeted.
    """

    operation: str = ""
    key: str = ""


@dataclass
class CancellationAppError(StoreAppError):
    """Raised when the deadline for a limit check expires mid store call."""
