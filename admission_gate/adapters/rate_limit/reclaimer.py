"""Background sweep that drops idle keys from a ledger.

Admission decisions never depend on the reclaimer: the evaluator re-prunes
on every call. Sweeping only bounds memory, so a failed or delayed sweep is
logged and the loop carries on.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from admission_gate.adapters.rate_limit.ledger import Ledger
from admission_gate.adapters.rate_limit.sliding_window import prune

logger = logging.getLogger(__name__)


class Reclaimer:
    """Periodically prunes every ledger key and deletes the empty ones.

    Args:
        ledger: Ledger to sweep.
        window_ms: Window length used for pruning.
        interval_ms: Delay between sweeps.
        clock: Time source returning epoch milliseconds.
        name: Label used for the worker thread and log records.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        window_ms: int,
        interval_ms: int,
        clock: Callable[[], int],
        name: str = "reclaimer",
    ) -> None:
        if interval_ms < 1:
            raise ValueError("interval_ms must be >= 1")

        self._ledger = ledger
        self._window_ms = window_ms
        self._interval_s = interval_ms / 1000
        self._clock = clock
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def sweep(self, now: int | None = None) -> int:
        """Prune every key once.

        Each key is handled under its own ledger lock, so a concurrent
        evaluation of the same key cannot lose an appended timestamp.

        Args:
            now: Sweep instant in epoch milliseconds; defaults to the clock.

        Returns:
            Number of keys removed from the ledger.
        """

        if now is None:
            now = self._clock()

        removed = 0
        for key in self._ledger.keys():
            with self._ledger.lock_for(key):
                if key not in self._ledger:
                    continue
                retained = prune(self._ledger.get(key), now, self._window_ms)
                if retained:
                    self._ledger.put(key, retained)
                else:
                    self._ledger.delete(key)
                    removed += 1

        if removed:
            logger.debug(
                "rate_limit.reclaimed",
                extra={
                    "limiter": self._name,
                    "removed_keys": removed,
                    "remaining_keys": len(self._ledger),
                },
            )
        return removed

    def start(self) -> None:
        """Start the background sweep thread. Calling it twice is a no-op."""

        with self._state_lock:
            if self.running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name=f"{self._name}-reclaimer",
                daemon=True,
            )
            self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the sweep thread to exit and wait for it."""

        with self._state_lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            try:
                self.sweep()
            except Exception:
                logger.exception(
                    "rate_limit.reclaim_failed",
                    extra={"limiter": self._name},
                )
