"""
Storage for rate limit counters.

The limiter depends on the RateLimitStore interface only. The in-memory
store keeps counters per process; running several instances behind a load
balancer multiplies the effective limit by the instance count unless a
shared store (e.g. a networked key-value service) is plugged in here.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator

from edge_guard.ratelimit.models import RateLimitEntry


class RateLimitStore(ABC):
    """Keyed store of RateLimitEntry values with age-based eviction."""

    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None:
        """Return the entry for ``key`` or None."""

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None:
        """Store ``entry`` under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it existed."""

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over a snapshot of the stored keys."""

    @abstractmethod
    def sweep(self, now_ms: float, max_age_ms: float) -> int:
        """
        Evict entries whose window started more than ``max_age_ms`` ago.

        Returns:
            Number of evicted entries
        """

    def __len__(self) -> int:
        return sum(1 for _ in self.keys())


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store backed by a dict."""

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> RateLimitEntry | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def keys(self) -> Iterator[str]:
        with self._lock:
            snapshot = list(self._entries)
        return iter(snapshot)

    def sweep(self, now_ms: float, max_age_ms: float) -> int:
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if now_ms - entry.window_start > max_age_ms
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
