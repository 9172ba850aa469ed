"""
Tests for the Redis-backed shared report cache (fake client, no server)
"""
import sys
import os
import asyncio

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import redis.asyncio as redis

from app.core.dsa.redis_dsa import RedisReportCache, report_key
from app.schemas.reward_anomaly_schemas import RewardAnomalyResponse, RewardStats


class FakeRedis:
    def __init__(self, fail=False):
        self.data = {}
        self.ttls = {}
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise redis.ConnectionError("connection refused")
        return self.data.get(key)

    async def set(self, key, value, px=None):
        if self.fail:
            raise redis.ConnectionError("connection refused")
        self.data[key] = value
        self.ttls[key] = px

    async def delete(self, key):
        self.data.pop(key, None)


def _report():
    return RewardAnomalyResponse(
        timeframe="7d",
        since="2024-05-03T12:00:00+00:00",
        stats=RewardStats(
            total_actions=3, total_amount=12.5, unique_users=2,
            unique_posts=1, pending_confirmations=0,
        ),
        top_earners=[],
        duplicate_hashes=[],
        spikes=[],
    )


def test_report_round_trips_through_redis():
    client = FakeRedis()
    cache = RedisReportCache(client)

    assert asyncio.run(cache.cache_report("7d", _report(), ttl=30))
    assert client.ttls[report_key("7d")] == 30000
    assert asyncio.run(cache.get_cached_report("7d")) == _report()


def test_missing_key_is_a_miss():
    assert asyncio.run(RedisReportCache(FakeRedis()).get_cached_report("24h")) is None


def test_redis_errors_degrade_to_miss():
    cache = RedisReportCache(FakeRedis(fail=True))
    assert asyncio.run(cache.get_cached_report("24h")) is None
    assert asyncio.run(cache.cache_report("24h", _report(), ttl=30)) is False


def test_unreadable_payload_is_discarded():
    client = FakeRedis()
    client.data[report_key("30d")] = '{"timeframe": "30d"}'
    assert asyncio.run(RedisReportCache(client).get_cached_report("30d")) is None


def test_disabled_without_client():
    cache = RedisReportCache(None)
    assert asyncio.run(cache.get_cached_report("24h")) is None
    assert asyncio.run(cache.cache_report("24h", _report(), ttl=30)) is False
    assert asyncio.run(cache.invalidate_report("24h")) is False


def test_invalidate_removes_key():
    client = FakeRedis()
    cache = RedisReportCache(client)
    asyncio.run(cache.cache_report("24h", _report(), ttl=30))
    assert asyncio.run(cache.invalidate_report("24h"))
    assert report_key("24h") not in client.data
