"""Resolution cache with TTL expiry, FIFO eviction and an optional Redis mirror."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Iterable, List, Optional

import redis

from .config import CACHE_MAX_SIZE, CACHE_TTL_SECONDS, REDIS_KEY_PREFIX, REDIS_URL
from .models import CacheEntry, CacheStats
from .utils import is_valid_resolution

logger = logging.getLogger(__name__)

_redis_client: Optional[Any] = None
_redis_lock = threading.Lock()


def get_redis_client(url: Optional[str] = None) -> Optional[Any]:
    """Return a cached Redis client if a URL is configured."""

    global _redis_client
    target = url or REDIS_URL
    if not target:
        return None
    if _redis_client is not None:
        return _redis_client
    with _redis_lock:
        if _redis_client is not None:
            return _redis_client
        try:
            _redis_client = redis.from_url(target, decode_responses=True)
        except Exception as exc:  # pragma: no cover - redis connection failure
            logger.warning("Unable to connect to Redis cache: %s", exc)
            _redis_client = None
    return _redis_client


class RedisMirror:
    """Share resolutions across processes through ``SETEX`` keys."""

    def __init__(self, client: Any, *, prefix: str = REDIS_KEY_PREFIX, ttl_seconds: float) -> None:
        self._client = client
        self._prefix = prefix.strip() or "gnews:resolved"
        self._ttl = max(1, int(ttl_seconds))

    def _key(self, original_key: str) -> str:
        return f"{self._prefix}:{original_key}"

    def get(self, original_key: str) -> Optional[str]:
        try:
            value = self._client.get(self._key(original_key))
        except Exception as exc:  # pragma: no cover - redis failure
            logger.debug("Redis mirror read failed for '%s': %s", original_key, exc)
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="ignore")
        if value is not None and not is_valid_resolution(value):
            logger.debug("Ignoring invalid Redis mirror value for '%s': %r", original_key, value)
            return None
        return value or None

    def set(self, original_key: str, resolved_url: str) -> None:
        try:
            self._client.setex(self._key(original_key), self._ttl, resolved_url)
        except Exception as exc:  # pragma: no cover - redis failure
            logger.debug("Redis mirror write failed for '%s': %s", original_key, exc)


class ResolutionCache:
    """Map opaque links to resolved URLs.

    Expiry is lazy: an entry older than ``ttl_seconds`` is dropped by the
    lookup that notices it. When full, the oldest *inserted* entry is evicted
    regardless of how recently it was read.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_size: int = CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.time,
        mirror: Optional[RedisMirror] = None,
    ) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self.max_size = max(1, int(max_size))
        self._clock = clock
        self._mirror = mirror
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if entry.is_expired(self._clock(), self.ttl_seconds):
                    logger.debug("Cache entry expired for: %s", key)
                    del self._entries[key]
                else:
                    return entry.resolved_url

        if self._mirror is None:
            return None
        shared = self._mirror.get(key)
        if shared:
            logger.debug("Using Redis mirrored resolution for: %s", key)
            self._insert(CacheEntry(key, shared, self._clock(), 0))
        return shared

    def set(self, key: str, resolved_url: str, *, hit_count: int = 0) -> None:
        self._insert(CacheEntry(key, resolved_url, self._clock(), hit_count))
        if self._mirror is not None:
            self._mirror.set(key, resolved_url)

    def _insert(self, entry: CacheEntry) -> None:
        with self._lock:
            if entry.original_key in self._entries:
                self._entries[entry.original_key] = entry
                return
            while len(self._entries) >= self.max_size:
                oldest_key, _ = self._entries.popitem(last=False)
                logger.debug("Cache size limit reached, removed oldest entry: %s", oldest_key)
            self._entries[entry.original_key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            expired = sum(
                1 for entry in self._entries.values() if entry.is_expired(now, self.ttl_seconds)
            )
            size = len(self._entries)
        return CacheStats(size=size, valid_count=size - expired, expired_count=expired)

    def snapshot(self) -> List[CacheEntry]:
        """Return a copy of every entry in insertion order."""

        with self._lock:
            return [
                CacheEntry(e.original_key, e.resolved_url, e.created_at, e.hit_count)
                for e in self._entries.values()
            ]

    def restore(self, entries: Iterable[CacheEntry]) -> int:
        """Load entries (oldest first) without touching the mirror; returns count kept."""

        loaded = 0
        for entry in entries:
            self._insert(entry)
            loaded += 1
        return min(loaded, len(self))


__all__ = ["RedisMirror", "ResolutionCache", "get_redis_client"]
