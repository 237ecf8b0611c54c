"""Application-level exception types.

This module defines domain errors used across adapters and the HTTP layer,
enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    min_value: int
    actual_value: int
    policy: str
    limit: int
    retry_after_seconds: int
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


class ConfigurationError(AppError):
    """Raised when a limiter or registry is built from invalid configuration.

    Fatal: the affected limiter must not be used.
    """


class UnknownPolicyError(AppError):
    """Raised when a call site asks the registry for a policy it does not hold."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


@dataclass
class RateLimitExceeded(AppError):
    """Admission was denied for the caller.

    This is an expected control-flow signal, not a fault. It propagates
    unchanged to the guarded operation's boundary, which decides how to
    surface it.

    Attributes:
        retry_after_seconds: Minimum wait before one slot frees up.
        policy: Name of the limiter that denied the request, when known.
        limit: Requests allowed per window for that limiter.
    """

    code: str = "rate_limit_exceeded"
    message: str = "Rate limit exceeded. Try again later."
    details: ErrorDetails | None = None
    retry_after_seconds: int = 0
    policy: str | None = None
    limit: int | None = None
