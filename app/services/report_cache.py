# app/services/report_cache.py
"""
Short-TTL, single-flight report cache.

- Entries are immutable values; a refresh replaces the entry, never edits it.
- At most one computation per key is in flight. Concurrent callers for an
  expired key await the same task.
- Callers await through asyncio.shield, so a cancelled caller does not cancel
  the computation other callers are still waiting on.
- Failed computations are not cached.

An optional shared level (RedisReportCache) is consulted before computing
and filled after.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)


class CacheEntry(NamedTuple):
    value: Any
    expires_at: float


class ReportCache:
    def __init__(
        self,
        ttl_seconds: float,
        shared=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.shared = shared
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

    def peek(self, key: str) -> Optional[Any]:
        """Fresh cached value or None; never triggers a computation."""
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at > self._clock():
            return entry.value
        return None

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def inflight_count(self) -> int:
        return len(self._inflight)

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[Any]]) -> Any:
        cached = self.peek(key)
        if cached is not None:
            logger.debug("Report cache hit for %s", key)
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(key, compute))
            self._inflight[key] = task
            task.add_done_callback(lambda t, key=key: self._finish(key, t))
        else:
            logger.debug("Joining in-flight report computation for %s", key)

        return await asyncio.shield(task)

    def _finish(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # mark the outcome as retrieved even if every caller went away
        if not task.cancelled():
            task.exception()

    async def _refresh(self, key: str, compute: Callable[[], Awaitable[Any]]) -> Any:
        value = None
        if self.shared is not None:
            value = await self.shared.get_cached_report(key)
            if value is not None:
                logger.debug("Shared report cache hit for %s", key)

        if value is None:
            started = time.perf_counter()
            value = await compute()
            logger.info("Computed %s report in %.3fs", key, time.perf_counter() - started)
            if self.shared is not None:
                await self.shared.cache_report(key, value, self.ttl_seconds)

        if self.ttl_seconds > 0:
            self._entries[key] = CacheEntry(value, self._clock() + self.ttl_seconds)
        return value
