from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import RLock
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

from src.ops_metrics.schemas.common import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

METRICS_CACHE_KEY = "dashboard_metrics"
ALERTS_CACHE_KEY = "dashboard_alerts"

DEFAULT_TTL_SECONDS = 300


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value plus the instant it was stored."""

    data: T
    timestamp: datetime


class TTLCache:
    """
    In-process key -> CacheEntry map with a freshness TTL.

    - get() treats entries at or past the TTL as absent (no proactive eviction)
    - set() replaces the entry wholesale
    - clear() drops all entries at once
    - get_or_compute() shares one in-flight computation among concurrent misses on a key

    Both maps are guarded by an RLock. In-flight tasks are keyed by (event loop, key), so
    single-flight holds within a loop and callers on different loops never share a future.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], datetime] = utc_now):
        self._ttl = timedelta(seconds=max(0, int(ttl_seconds)))
        self._clock = clock
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._inflight: Dict[Tuple[asyncio.AbstractEventLoop, str], asyncio.Future] = {}
        self._lock = RLock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _is_fresh(self, entry: CacheEntry[Any]) -> bool:
        return self._clock() - entry.timestamp < self._ttl

    # PUBLIC_INTERFACE
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value for key, or None when missing or stale."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry):
            return None
        return entry.data

    # PUBLIC_INTERFACE
    def set(self, key: str, value: Any) -> None:
        """Store value under key, stamped with the current time."""
        entry = CacheEntry(data=value, timestamp=self._clock())
        with self._lock:
            self._entries[key] = entry

    # PUBLIC_INTERFACE
    def clear(self) -> None:
        """Drop every entry, forcing the next read of each key to recompute."""
        with self._lock:
            self._entries.clear()

    def entry(self, key: str) -> Optional[CacheEntry[Any]]:
        """Raw entry for diagnostics, regardless of freshness."""
        with self._lock:
            return self._entries.get(key)

    # PUBLIC_INTERFACE
    async def get_or_compute(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Return the fresh cached value for key, or compute, store and return it.

        Concurrent callers that miss on the same key await a single computation. A failed
        computation stores nothing and its exception reaches every waiter.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("Cache hit key=%s", key)
            return cached

        # Futures belong to one event loop; callers on other loops compute independently.
        slot = (asyncio.get_running_loop(), key)
        with self._lock:
            inflight = self._inflight.get(slot)
        if inflight is not None:
            logger.debug("Cache miss key=%s; joining in-flight computation", key)
            return await asyncio.shield(inflight)

        logger.debug("Cache miss key=%s; computing", key)
        task = asyncio.ensure_future(self._compute_and_store(key, factory))
        with self._lock:
            self._inflight[slot] = task
        task.add_done_callback(lambda _t: self._drop_inflight(slot))
        return await asyncio.shield(task)

    def _drop_inflight(self, slot: Tuple[asyncio.AbstractEventLoop, str]) -> None:
        with self._lock:
            self._inflight.pop(slot, None)

    async def _compute_and_store(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        value = await factory()
        self.set(key, value)
        return value
