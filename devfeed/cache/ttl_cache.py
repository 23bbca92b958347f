"""Bounded, insertion-ordered cache with per-entry expiry."""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar


V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading after which it is stale."""

    value: V
    expires_at: float


class TimedCache(Generic[V]):
    """In-memory cache with TTL expiry and oldest-first eviction.

    Setting an existing key replaces its entry and moves it to the newest
    position. Once more than ``max_entries`` keys are stored, the oldest
    inserted ones are evicted. Expired entries are removed when read.
    """

    def __init__(self, max_entries: int, clock: Clock = time.monotonic) -> None:
        """Initialize the cache.

        Args:
            max_entries: Maximum number of entries kept.
            clock: Time source in seconds; injectable for tests.
        """
        if max_entries < 1:
            msg = "max_entries must be at least 1"
            raise ValueError(msg)
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[V]] = OrderedDict()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: str) -> V | None:
        """Return the live value for a key, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None

        return entry.value

    def set(self, key: str, value: V, ttl_seconds: float) -> None:
        """Store a value for ``ttl_seconds``, evicting the oldest entries."""
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            value=value, expires_at=self._clock() + ttl_seconds
        )

        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def evict(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        """Stored keys, oldest first (expired entries included)."""
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
