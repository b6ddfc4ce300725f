"""
app/stores/ttl_cache.py

Process-local cache with per-entry expiry.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Hashable


class TTLCache:
    """
    Dict-backed cache whose entries expire ``ttl_seconds`` after being set.

    There is no mutual exclusion around a miss: two concurrent requests may
    both miss and both store the same key, and the later write wins.
    Expired entries are dropped lazily on read and by :meth:`purge_expired`.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = max(0.0, ttl_seconds)
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self._ttl_seconds if ttl_seconds is None else max(0.0, ttl_seconds)
        if key not in self._entries and len(self._entries) >= self._max_entries:
            self.purge_expired()
            if len(self._entries) >= self._max_entries:
                # Evict the entry closest to expiry.
                oldest = min(self._entries, key=lambda k: self._entries[k][0])
                self._entries.pop(oldest, None)
        self._entries[key] = (self._clock() + ttl, value)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            self._entries.pop(key, None)
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
