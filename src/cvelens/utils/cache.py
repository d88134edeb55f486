"""In-memory TTL cache for upstream responses."""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the clock reading at which it was stored."""

    value: Any
    stored_at: float


class TTLCache:
    """Key/value store whose entries expire ``ttl_seconds`` after insertion.

    Expiry is lazy: a stale entry is removed by the first ``get`` that finds
    it. There is no background sweep. When ``max_entries`` is given, the
    least recently used entry is dropped once the cache grows past it.
    """

    def __init__(
        self,
        ttl_seconds: float = 24 * 60 * 60,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None

        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store a value, overwriting any previous entry and its timestamp."""
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
        self._entries.move_to_end(key)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache full, evicted {evicted}")

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
