"""
Tests for the single-flight TTL report cache
"""
import sys
import os
import asyncio

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from app.services.report_cache import ReportCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeSharedCache:
    def __init__(self, stored=None):
        self.stored = dict(stored or {})
        self.writes = []

    async def get_cached_report(self, key):
        return self.stored.get(key)

    async def cache_report(self, key, value, ttl):
        self.writes.append((key, value, ttl))
        self.stored[key] = value
        return True


def test_concurrent_callers_share_one_computation():
    async def scenario():
        cache = ReportCache(ttl_seconds=30)
        calls = 0
        release = asyncio.Event()

        async def compute():
            nonlocal calls
            calls += 1
            await release.wait()
            return {"report": calls}

        waiters = [asyncio.ensure_future(cache.get_or_compute("24h", compute)) for _ in range(5)]
        await asyncio.sleep(0)
        assert cache.inflight_count() == 1
        release.set()
        results = await asyncio.gather(*waiters)
        return calls, results, cache.inflight_count()

    calls, results, inflight = asyncio.run(scenario())
    assert calls == 1
    assert all(r is results[0] for r in results)
    assert inflight == 0


def test_cancelled_caller_does_not_cancel_shared_computation():
    async def scenario():
        cache = ReportCache(ttl_seconds=30)
        release = asyncio.Event()
        finished = []

        async def compute():
            await release.wait()
            finished.append(True)
            return "report"

        first = asyncio.ensure_future(cache.get_or_compute("7d", compute))
        second = asyncio.ensure_future(cache.get_or_compute("7d", compute))
        await asyncio.sleep(0)

        first.cancel()
        await asyncio.sleep(0)
        release.set()

        result = await second
        with pytest.raises(asyncio.CancelledError):
            await first
        return result, finished, cache.peek("7d")

    result, finished, cached = asyncio.run(scenario())
    assert result == "report"
    assert finished == [True]
    assert cached == "report"


def test_failures_are_not_cached():
    async def scenario():
        cache = ReportCache(ttl_seconds=30)
        attempts = []

        async def compute():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("store down")
            return "recovered"

        with pytest.raises(RuntimeError):
            await cache.get_or_compute("24h", compute)
        assert cache.peek("24h") is None
        return await cache.get_or_compute("24h", compute), len(attempts)

    result, attempts = asyncio.run(scenario())
    assert result == "recovered"
    assert attempts == 2


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = ReportCache(ttl_seconds=30, clock=clock)
    values = iter(["first", "second"])

    async def compute():
        return next(values)

    assert asyncio.run(cache.get_or_compute("30d", compute)) == "first"
    clock.now += 29
    assert asyncio.run(cache.get_or_compute("30d", compute)) == "first"
    clock.now += 2
    assert asyncio.run(cache.get_or_compute("30d", compute)) == "second"


def test_zero_ttl_disables_local_entries():
    cache = ReportCache(ttl_seconds=0)
    calls = []

    async def compute():
        calls.append(1)
        return len(calls)

    asyncio.run(cache.get_or_compute("24h", compute))
    asyncio.run(cache.get_or_compute("24h", compute))
    assert len(calls) == 2
    assert cache.peek("24h") is None


def test_shared_level_consulted_before_computing():
    shared = FakeSharedCache(stored={"24h": "from-redis"})
    cache = ReportCache(ttl_seconds=30, shared=shared)

    async def compute():
        raise AssertionError("should not compute on a shared hit")

    assert asyncio.run(cache.get_or_compute("24h", compute)) == "from-redis"
    assert cache.peek("24h") == "from-redis"
    assert shared.writes == []


def test_shared_level_filled_after_computing():
    shared = FakeSharedCache()
    cache = ReportCache(ttl_seconds=30, shared=shared)

    async def compute():
        return "fresh"

    assert asyncio.run(cache.get_or_compute("7d", compute)) == "fresh"
    assert shared.writes == [("7d", "fresh", 30)]


def test_invalidate_drops_entries():
    cache = ReportCache(ttl_seconds=30)

    async def compute():
        return "value"

    asyncio.run(cache.get_or_compute("24h", compute))
    asyncio.run(cache.get_or_compute("7d", compute))
    cache.invalidate("24h")
    assert cache.peek("24h") is None
    assert cache.peek("7d") == "value"
    cache.invalidate()
    assert cache.peek("7d") is None
