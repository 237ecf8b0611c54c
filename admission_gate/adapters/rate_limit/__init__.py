"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory sliding-window limiter and later migrate to a shared store
without changing the API layer.
"""

from admission_gate.adapters.rate_limit.base import (
    AbstractRateLimiter,
    AdmissionDecision,
    LimiterConfig,
)
from admission_gate.adapters.rate_limit.in_memory import (
    InMemorySlidingWindowRateLimiter,
    new_limiter,
)
from admission_gate.adapters.rate_limit.registry import LimiterRegistry

__all__ = [
    "AbstractRateLimiter",
    "AdmissionDecision",
    "InMemorySlidingWindowRateLimiter",
    "LimiterConfig",
    "LimiterRegistry",
    "new_limiter",
]
