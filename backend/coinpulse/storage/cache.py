"""In-memory TTL cache for upstream responses.

Entries never leave the cache on their own: ``get`` simply treats an
entry older than the TTL as absent. The expired value stays reachable
through ``get_stale`` so a caller can fall back to it when a fresh fetch
fails. The key space (endpoints x tracked coins) is small, so there is
no size bound.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL = 600.0  # 10 minutes


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the clock reading when it was stored.

    ``expired`` entries are invisible to ``get`` regardless of age.
    """

    value: Any
    stored_at: float
    expired: bool = False

    def age(self, now: float) -> float:
        return now - self.stored_at


class TTLCache:
    """Key -> (value, stored_at) store with a fixed time-to-live."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        """Get a fresh value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None or entry.expired:
            return None
        if entry.age(self._clock()) >= self.ttl:
            return None
        return entry.value

    def get_stale(self, key: str) -> CacheEntry | None:
        """Get the last stored entry for ``key`` regardless of its age."""
        return self._entries.get(key)

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def expire(self, prefix: str = "") -> int:
        """Mark entries whose key starts with ``prefix`` as expired.

        Expired entries are invisible to ``get`` but still returned by
        ``get_stale``. Returns the number of entries expired.
        """
        count = 0
        for key, entry in self._entries.items():
            if key.startswith(prefix):
                self._entries[key] = CacheEntry(entry.value, entry.stored_at, expired=True)
                count += 1
        if count:
            logger.debug(f"Expired {count} cache entries with prefix {prefix!r}")
        return count

    def __len__(self) -> int:
        return len(self._entries)
