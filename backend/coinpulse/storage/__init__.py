"""Data storage layer."""

from coinpulse.storage.cache import DEFAULT_TTL, CacheEntry, TTLCache

__all__ = [
    "DEFAULT_TTL",
    "CacheEntry",
    "TTLCache",
]
