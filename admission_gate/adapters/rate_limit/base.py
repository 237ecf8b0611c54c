"""Rate limiter interfaces and value types.

The HTTP layer should depend on this abstraction (not the concrete
implementation) so the storage backend can be swapped with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from admission_gate.core.errors import ConfigurationError

KEY_SEPARATOR = ":"


@dataclass(frozen=True)
class LimiterConfig:
    """Immutable limiter configuration, validated once at construction.

    Attributes:
        max_requests: Admitted requests allowed per window.
        window_ms: Trailing window length in milliseconds.
        key_prefix: Namespace that keeps this limiter's keys apart from
            other limiters sharing the same identity space.

    Raises:
        ConfigurationError: If any field is invalid.
    """

    max_requests: int
    window_ms: int
    key_prefix: str

    def __post_init__(self) -> None:
        _require_positive_int("max_requests", self.max_requests)
        _require_positive_int("window_ms", self.window_ms)
        if not isinstance(self.key_prefix, str) or not self.key_prefix:
            raise ConfigurationError(
                code="invalid_limiter_config",
                message="key_prefix must be a non-empty string",
                details={"field": "key_prefix"},
            )


def _require_positive_int(field: str, value: object) -> None:
    # bool is an int subclass; True would otherwise pass as 1.
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(
            code="invalid_limiter_config",
            message=f"{field} must be an integer >= 1",
            details={"field": field, "min_value": 1},
        )


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of a single admission evaluation.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window.
        remaining: Slots left in the window after this decision.
        retry_after_seconds: Minimum wait before a slot frees up. Set only
            when the request was denied.
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    config: LimiterConfig

    @abstractmethod
    def consume(self, identity: str) -> AdmissionDecision:
        """Evaluate (and, when admitted, record) one request for a caller.

        Args:
            identity: Stable caller identifier (e.g., authenticated subject).

        Returns:
            AdmissionDecision describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release background resources held by the limiter."""
        raise NotImplementedError
