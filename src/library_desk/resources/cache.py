"""
In-memory cache for resource reads.

Entries are keyed by resource URI and expire after
``ServerConfig.resource_cache_ttl`` seconds. Every tool that changes loans,
stock or settings clears the cache, so a read after a write never returns the
pre-write view.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from ..config import get_config

logger = logging.getLogger(__name__)


class ResourceCache:
    """Thread-safe TTL cache of resource payloads."""

    def __init__(self, ttl_seconds: int | None = None):
        self._ttl_seconds = ttl_seconds
        self._entries: dict[str, tuple[Any, datetime]] = {}
        self._lock = threading.RLock()
        self.stats = {"hits": 0, "misses": 0}

    @property
    def ttl(self) -> timedelta:
        seconds = self._ttl_seconds
        if seconds is None:
            seconds = get_config().resource_cache_ttl
        return timedelta(seconds=seconds)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                value, expires_at = entry
                if datetime.now() < expires_at:
                    self.stats["hits"] += 1
                    return value
                del self._entries[key]
            self.stats["misses"] += 1
            return None

    def set(self, key: str, value: Any) -> None:
        ttl = self.ttl
        if ttl <= timedelta(0):
            return
        now = datetime.now()
        with self._lock:
            self._purge_expired(now)
            self._entries[key] = (value, now + ttl)

    def _purge_expired(self, now: datetime) -> None:
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, loading and storing it on a miss."""
        value = self.get(key)
        if value is None:
            value = loader()
            self.set(key, value)
        return value

    def invalidate(self) -> None:
        """Drop every entry."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        if count:
            logger.debug("Resource cache cleared (%d entries)", count)


resource_cache = ResourceCache()
