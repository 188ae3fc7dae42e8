"""In-process TTL cache with single-flight misses.

Shields callers from upstream latency and rate limits: every key family
picks its own TTL, a miss runs the producer exactly once no matter how many
coroutines ask for the key at the same time, and a failing producer leaves
the cache untouched.

The cache is only touched from the event loop thread, and no ``await``
happens between reading and writing an entry, so no lock is needed for
consistency.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from core.types import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

T = TypeVar("T")

Producer = Callable[[], Awaitable[T]]


class TTLCache:
    """Key/value store with per-entry expiry and single-flight semantics."""

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        """Initialize the cache.

        Args:
            clock: Monotonic time source in seconds (default: time.monotonic)
        """
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._hits = 0
        self._misses = 0

    def _lookup(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    async def get_or_compute(self, key: str, ttl: float, producer: Producer[T]) -> T:
        """Return the cached value for ``key`` or compute and store it.

        Args:
            key: Cache key
            ttl: Lifetime of a freshly computed value in seconds
            producer: Zero-argument coroutine function producing the value

        Returns:
            Cached or freshly produced value

        Raises:
            Exception: Whatever ``producer`` raised; nothing is cached then
        """
        while True:
            entry = self._lookup(key)
            if entry is not None:
                self._hits += 1
                return entry.value

            pending = self._inflight.get(key)
            if pending is None:
                break

            # Another coroutine is already producing this key.
            self._hits += 1
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                task = asyncio.current_task()
                if pending.cancelled() and not (task is not None and task.cancelling()):
                    logger.debug("In-flight producer for %s was cancelled, retrying", key)
                    continue
                raise

        self._misses += 1
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await producer()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unobserved failure does not log at GC time.
            future.exception()
            raise
        else:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
            future.set_result(value)
            return value
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]

    def get(self, key: str) -> Any:
        """Return the unexpired value for ``key`` or None (no stats update)."""
        entry = self._lookup(key)
        return entry.value if entry is not None else None

    def invalidate(self, key: str) -> bool:
        """Drop ``key``. Returns True if an entry was removed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def purge_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> CacheStats:
        self.purge_expired()
        return CacheStats(
            keys=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            inflight=len(self._inflight),
        )
