"""Per-key store of recent admission timestamps.

Keys are guarded by a fixed pool of striped locks: a key always maps to the
same lock, so callers touching the same key are serialized, while callers on
different keys only contend when their keys land on the same stripe.
"""

from __future__ import annotations

import threading
import zlib
from typing import Iterator

DEFAULT_LOCK_STRIPES = 64


class Ledger:
    """Mapping of limiter key to its admission timestamps (milliseconds).

    The ledger itself performs no pruning. Readers and writers must hold
    ``lock_for(key)`` around any read-modify-write of a key's entry.
    """

    def __init__(self, *, lock_stripes: int = DEFAULT_LOCK_STRIPES) -> None:
        if lock_stripes < 1:
            raise ValueError("lock_stripes must be >= 1")
        self._locks = tuple(threading.Lock() for _ in range(lock_stripes))
        self._entries: dict[str, list[int]] = {}
        # Guards the mapping's shape only (insert/delete/iterate), never a
        # key's read-modify-write.
        self._shape_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def lock_for(self, key: str) -> threading.Lock:
        """Return the lock that serializes access to ``key``."""
        # crc32 is stable across processes, unlike the salted built-in hash().
        index = zlib.crc32(key.encode("utf-8")) % len(self._locks)
        return self._locks[index]

    def keys(self) -> list[str]:
        """Return a point-in-time copy of the keys currently held."""
        with self._shape_lock:
            return list(self._entries)

    def get(self, key: str) -> list[int]:
        """Return the stored sequence for ``key`` (empty when absent).

        The returned list must not be mutated by the caller.
        """
        return self._entries.get(key, [])

    def put(self, key: str, timestamps: list[int]) -> None:
        with self._shape_lock:
            self._entries[key] = timestamps

    def delete(self, key: str) -> None:
        with self._shape_lock:
            self._entries.pop(key, None)

    def snapshot(self, key: str) -> tuple[int, ...]:
        """Return an immutable copy of the key's timestamps, taken under its lock."""
        with self.lock_for(key):
            return tuple(self._entries.get(key, ()))
