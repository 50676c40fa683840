"""
ephemeral_cache.py
~~~~~~~~~~~~~~~~~~
Process-local key → value store with per-entry expiry.

* Expiry is checked lazily on every read; an expired entry is dropped and
  reported as absent.
* :meth:`EphemeralCache.sweep` removes entries nobody re-reads.  ``main.py``
  runs it from a background task every ``CACHE_SWEEP_INTERVAL_S``.

The instance is shared by concurrent request handlers, so every mutation
goes through one lock.  Two handlers missing the same key will both fetch
upstream; that is accepted.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
LOG = logging.getLogger("ephemeral_cache")

_MISSING = object()


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float  # epoch seconds


class EphemeralCache:
    """Thread-safe TTL cache; each entry carries its own TTL."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        entry = CacheEntry(value, self._clock() + ttl_seconds)
        with self._lock:
            self._entries[key] = entry

    def _live(self, key: str) -> Any:
        """Return the stored value or ``_MISSING``; caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return _MISSING
        return entry.value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._live(key)
        if value is _MISSING:
            return default
        LOG.debug("Cache hit for: %r", key)
        return value

    def has(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not _MISSING

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            LOG.info("[cache] Swept %d expired entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
