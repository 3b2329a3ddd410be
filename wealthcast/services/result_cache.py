"""
In-memory result cache with LRU eviction and per-entry TTL.

The cache is an explicit value handed to the forecast service; there is no
module-level instance. Concurrent requests for the same key compute once:
the first caller holds the key's lock while computing, later callers wait
and then read the stored value.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultCache:
    """Thread-safe LRU + TTL cache with at-most-one-writer-per-key."""

    def __init__(
        self,
        max_entries: int = 128,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            max_entries: Entries kept before the least recently used is evicted
            ttl_seconds: Lifetime of an entry
            clock: Monotonic time source (injectable for tests)
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self._key_locks: Dict[Hashable, threading.Lock] = {}
        self._key_users: Dict[Hashable, int] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _lookup(self, key: Hashable) -> Tuple[bool, Any]:
        # Caller holds self._lock
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return False, None
        self._entries.move_to_end(key)
        return True, value

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            found, value = self._lookup(key)
            return value if found else None

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry {evicted!r}")

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, (stored_at, _) in self._entries.items()
                if now - stored_at > self.ttl_seconds
            ]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        """
        Return the cached value for ``key``, computing and storing it if needed.

        Only one thread computes a given key at a time; others block on the
        key's lock and reuse the stored result. The key's lock stays registered
        while any caller holds or waits on it, so a failed computation hands
        over to the next waiter instead of to a fresh lock.
        """
        with self._lock:
            found, value = self._lookup(key)
            if found:
                self.hits += 1
                logger.debug(f"Cache hit for {key!r}")
                return value
            key_lock = self._key_locks.setdefault(key, threading.Lock())
            self._key_users[key] = self._key_users.get(key, 0) + 1

        try:
            with key_lock:
                with self._lock:
                    found, value = self._lookup(key)
                    if found:
                        self.hits += 1
                        return value
                    self.misses += 1
                value = compute()
                self.set(key, value)
                return value
        finally:
            with self._lock:
                self._key_users[key] -= 1
                if self._key_users[key] == 0:
                    del self._key_users[key]
                    del self._key_locks[key]
