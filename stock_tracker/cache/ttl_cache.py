"""In-memory TTL cache for loaded price snapshots."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Iterable, NamedTuple


class _Entry(NamedTuple):
    value: object
    expires_at: float


def snapshot_key(year: int, tickers: Iterable[str]) -> str:
    """Cache key for one (year, ticker set) price snapshot; ticker order is irrelevant."""
    return f"prices:{year}:{','.join(sorted(set(tickers)))}"


class TTLCache:
    """Thread-safe string-keyed cache; entries lapse ``ttl`` seconds after ``set``."""

    def __init__(self, default_ttl_seconds: int = 3600, clock: Callable[[], float] = time.time) -> None:
        self.default_ttl_seconds = max(1, default_ttl_seconds)
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = Lock()

    def get(self, key: str) -> object | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at < self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else max(1, ttl_seconds)
        with self._lock:
            self._entries[key] = _Entry(value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        """Number of live entries; lapsed ones are dropped first."""
        now = self._clock()
        with self._lock:
            for key in [key for key, entry in self._entries.items() if entry.expires_at < now]:
                del self._entries[key]
            return len(self._entries)
