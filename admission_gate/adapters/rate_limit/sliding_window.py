"""Sliding-window admission evaluation.

The window trails the current instant: a timestamp ``t`` still counts while
``t > now - window_ms``. A timestamp exactly one window old no longer counts.
"""

from __future__ import annotations

import math
from typing import Sequence

from admission_gate.adapters.rate_limit.base import AdmissionDecision, LimiterConfig
from admission_gate.adapters.rate_limit.ledger import Ledger


def prune(timestamps: Sequence[int], now: int, window_ms: int) -> list[int]:
    """Drop every timestamp that has left the trailing window.

    Insertion order of the survivors is preserved.
    """
    window_start = now - window_ms
    return [t for t in timestamps if t > window_start]


def evaluate_window(
    timestamps: Sequence[int],
    now: int,
    config: LimiterConfig,
) -> tuple[list[int], AdmissionDecision]:
    """Decide admission for one request without touching any shared state.

    Args:
        timestamps: The key's current admission timestamps.
        now: Evaluation instant, in milliseconds since epoch.
        config: Limiter configuration.

    Returns:
        Tuple of (sequence to store back for the key, decision).
    """

    retained = prune(timestamps, now, config.window_ms)
    count = len(retained)

    if count >= config.max_requests:
        # Oldest surviving entry is the first slot to free up.
        oldest = min(retained)
        wait_ms = oldest + config.window_ms - now
        retry_after = max(0, int(math.ceil(wait_ms / 1000)))
        return retained, AdmissionDecision(
            allowed=False,
            limit=config.max_requests,
            remaining=0,
            retry_after_seconds=retry_after,
        )

    retained.append(now)
    return retained, AdmissionDecision(
        allowed=True,
        limit=config.max_requests,
        remaining=config.max_requests - len(retained),
    )


def evaluate(ledger: Ledger, key: str, now: int, config: LimiterConfig) -> AdmissionDecision:
    """Evaluate one request for ``key`` against the ledger, mutating it.

    The read-prune-append sequence runs under the key's lock. The new
    sequence is computed on a copy and stored only once complete, so a
    failure part-way leaves the previous entry untouched.
    """

    with ledger.lock_for(key):
        retained, decision = evaluate_window(ledger.get(key), now, config)
        ledger.put(key, retained)
    return decision
