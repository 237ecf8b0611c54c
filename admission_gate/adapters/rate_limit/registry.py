"""Named collection of limiter instances.

Call sites bind to a policy name ("write", "read", ...) instead of
re-deriving configuration. The registry owns the lifecycle of the limiters
it holds: closing it stops every background sweep.
"""

from __future__ import annotations

import threading
from typing import Iterator

from admission_gate.adapters.rate_limit.base import AbstractRateLimiter
from admission_gate.core.errors import ConfigurationError, UnknownPolicyError


class LimiterRegistry:
    """Thread-safe mapping of policy name to limiter instance."""

    def __init__(self) -> None:
        self._limiters: dict[str, AbstractRateLimiter] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> "LimiterRegistry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __contains__(self, name: object) -> bool:
        return name in self._limiters

    def __iter__(self) -> Iterator[tuple[str, AbstractRateLimiter]]:
        with self._lock:
            return iter(list(self._limiters.items()))

    def __len__(self) -> int:
        return len(self._limiters)

    def register(self, name: str, limiter: AbstractRateLimiter) -> AbstractRateLimiter:
        """Add a limiter under ``name``.

        Raises:
            ConfigurationError: If the name is empty or taken, or if another
                registered limiter already uses the same key prefix.
        """
        if not name:
            raise ConfigurationError(
                code="invalid_policy_name",
                message="Policy name must be a non-empty string",
            )

        with self._lock:
            if name in self._limiters:
                raise ConfigurationError(
                    code="duplicate_policy",
                    message=f"Policy {name!r} is already registered",
                    details={"policy": name},
                )
            prefix = limiter.config.key_prefix
            for other_name, other in self._limiters.items():
                if other.config.key_prefix == prefix:
                    raise ConfigurationError(
                        code="duplicate_key_prefix",
                        message=f"Key prefix {prefix!r} is already used by policy {other_name!r}",
                        details={"policy": name, "hint": "Give every policy its own key_prefix"},
                    )
            self._limiters[name] = limiter
        return limiter

    def get(self, name: str) -> AbstractRateLimiter:
        """Return the limiter registered under ``name``.

        Raises:
            UnknownPolicyError: If no such policy exists.
        """
        limiter = self._limiters.get(name)
        if limiter is None:
            raise UnknownPolicyError(
                code="unknown_policy",
                message=f"No rate limit policy named {name!r}",
                details={"policy": name},
            )
        return limiter

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._limiters)

    def close(self) -> None:
        """Close every registered limiter."""
        with self._lock:
            limiters = list(self._limiters.values())
        for limiter in limiters:
            limiter.close()
