"""In-process caches shared between request handlers."""

import threading
import time
from typing import Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")

_MISSING = object()


class MemoCache(Generic[V]):
    """Get-or-compute map without eviction.

    Computation happens outside the lock, so simultaneous first callers may
    both compute; the first value stored wins and is what every caller gets.
    A computation that raises stores nothing.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._values: dict[Hashable, V] = {}

    def get_or_compute(self, key: Hashable, compute: Callable[[], V]) -> V:
        with self._lock:
            value = self._values.get(key, _MISSING)
        if value is not _MISSING:
            return value

        computed = compute()
        with self._lock:
            return self._values.setdefault(key, computed)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


class TTLCache(Generic[V]):
    """Cache whose entries expire a fixed time after insertion."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        """Return the cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        now = self._clock()

        # Clean expired entries
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]

        self._entries[key] = (now + self.ttl, value)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["MemoCache", "TTLCache"]
