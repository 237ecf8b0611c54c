"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports the settings module,
so every test sees the same authentication and policy configuration.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Callable, Iterator  # noqa: E402

import pytest  # noqa: E402

from admission_gate.adapters.rate_limit.base import LimiterConfig  # noqa: E402
from admission_gate.adapters.rate_limit.in_memory import (  # noqa: E402
    InMemorySlidingWindowRateLimiter,
)


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.current = start_ms

    def __call__(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms

    def set(self, ms: int) -> None:
        self.current = ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_limiter(clock: FakeClock) -> Iterator[Callable[..., InMemorySlidingWindowRateLimiter]]:
    """Factory for limiters bound to the fake clock, closed after the test."""

    created: list[InMemorySlidingWindowRateLimiter] = []

    def _make(
        max_requests: int = 3,
        window_ms: int = 10_000,
        key_prefix: str = "test",
        **kwargs,
    ) -> InMemorySlidingWindowRateLimiter:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("start_reclaimer", False)
        limiter = InMemorySlidingWindowRateLimiter(
            LimiterConfig(max_requests=max_requests, window_ms=window_ms, key_prefix=key_prefix),
            **kwargs,
        )
        created.append(limiter)
        return limiter

    yield _make

    for limiter in created:
        limiter.close()
