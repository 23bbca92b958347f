"""In-memory caches and request coalescing."""

from devfeed.cache.inflight import InFlightRegistry
from devfeed.cache.ttl_cache import CacheEntry, Clock, TimedCache


__all__ = ["CacheEntry", "Clock", "InFlightRegistry", "TimedCache"]
