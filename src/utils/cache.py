"""
In-memory TTL cache.

key -> (expires_at, value). Expired entries are dropped on read, and
invalidate() is the only way to evict early.
"""

import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


_MISSING = object()


class TTLCache:
    """Thread-safe TTL cache with an injectable clock."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self.ttl = ttl_seconds
        self._clock = clock
        self._data: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self.misses += 1
                return default
            expires_at, value = entry
            if self._clock() >= expires_at:
                self._data.pop(key, None)
                self.misses += 1
                return default
            self.hits += 1
            return value

    def set(self, key: Hashable, value: Any):
        with self._lock:
            self._data[key] = (self._clock() + self.ttl, value)

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Return the cached value, computing and storing it on a miss."""
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = compute()
            self.set(key, value)
        return value

    def invalidate(self, key: Optional[Hashable] = None):
        """Drop one key, or everything when key is None."""
        with self._lock:
            if key is None:
                self._data.clear()
            else:
                self._data.pop(key, None)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
