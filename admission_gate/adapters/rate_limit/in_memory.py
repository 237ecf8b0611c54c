"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit
  (``instance_count * max_requests``).
- Thread-safe: per-key access is serialized through the ledger's striped locks.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from admission_gate.adapters.rate_limit.base import (
    KEY_SEPARATOR,
    AbstractRateLimiter,
    AdmissionDecision,
    LimiterConfig,
)
from admission_gate.adapters.rate_limit.ledger import DEFAULT_LOCK_STRIPES, Ledger
from admission_gate.adapters.rate_limit.reclaimer import Reclaimer
from admission_gate.adapters.rate_limit.sliding_window import evaluate


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Limiter instance owning one config, one ledger and one reclaimer.

    The reclaimer starts on construction (unless ``start_reclaimer=False``)
    and stops on ``close()``. Use the limiter as a context manager to scope
    the background sweep to a block.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        config: LimiterConfig,
        *,
        clock: Callable[[], int] = now_ms,
        reclaim_interval_ms: int | None = None,
        lock_stripes: int = DEFAULT_LOCK_STRIPES,
        start_reclaimer: bool = True,
    ) -> None:
        """Initialize the limiter.

        Args:
            config: Validated limiter configuration.
            clock: Time source returning epoch milliseconds.
            reclaim_interval_ms: Sweep cadence; defaults to one window.
            lock_stripes: Number of striped locks guarding the ledger.
            start_reclaimer: Start the background sweep immediately.
        """
        self.config = config
        self._clock = clock
        self._ledger = Ledger(lock_stripes=lock_stripes)
        self._reclaimer = Reclaimer(
            self._ledger,
            window_ms=config.window_ms,
            interval_ms=reclaim_interval_ms or config.window_ms,
            clock=clock,
            name=config.key_prefix,
        )
        self._closed = False
        self._close_lock = threading.Lock()
        if start_reclaimer:
            self._reclaimer.start()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemorySlidingWindowRateLimiter(key_prefix={self.config.key_prefix!r}, "
            f"max_requests={self.config.max_requests}, window_ms={self.config.window_ms}, "
            f"keys={len(self._ledger)})"
        )

    def __enter__(self) -> "InMemorySlidingWindowRateLimiter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def reclaimer(self) -> Reclaimer:
        return self._reclaimer

    def key_for(self, identity: str) -> str:
        """Build the namespaced ledger key for a caller identity."""
        return f"{self.config.key_prefix}{KEY_SEPARATOR}{identity}"

    def consume(self, identity: str) -> AdmissionDecision:
        """Evaluate one request for ``identity`` and record it when admitted.

        Raises:
            ValueError: If identity is empty.
            RuntimeError: If the limiter has been closed.
        """
        if self._closed:
            raise RuntimeError(f"limiter {self.config.key_prefix!r} is closed")
        if not identity:
            raise ValueError("identity must be a non-empty string")

        return evaluate(self._ledger, self.key_for(identity), self._clock(), self.config)

    def sweep(self) -> int:
        """Run one reclaimer pass synchronously. Returns removed key count."""
        return self._reclaimer.sweep()

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._reclaimer.stop()


def new_limiter(config: LimiterConfig, **kwargs: object) -> InMemorySlidingWindowRateLimiter:
    """Construct a limiter instance for ``config``.

    Keyword arguments are forwarded to ``InMemorySlidingWindowRateLimiter``.
    """
    return InMemorySlidingWindowRateLimiter(config, **kwargs)  # type: ignore[arg-type]
