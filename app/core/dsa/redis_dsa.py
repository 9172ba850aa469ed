# app/core/dsa/redis_dsa.py
"""
Redis primitives for the shared report cache.

- TTL cache (SETEX) holding one rendered report per timeframe tag

The cache is best-effort: any Redis failure is logged and reported as a miss,
so the caller falls back to computing the report.
"""

import json
import logging
from typing import Optional

import redis.asyncio as redis

from app.db.redis_client import safe_json_dumps
from app.schemas.reward_anomaly_schemas import RewardAnomalyResponse

logger = logging.getLogger(__name__)

REPORT_KEY_PREFIX = "reward_anomalies:report:"


def report_key(timeframe: str) -> str:
    return f"{REPORT_KEY_PREFIX}{timeframe}"


class RedisReportCache:
    """Second cache level shared across API workers"""

    def __init__(self, client: Optional[redis.Redis]):
        self.client = client

    async def get_cached_report(self, timeframe: str) -> Optional[RewardAnomalyResponse]:
        """
        Retrieve a cached report.
        Time Complexity: O(1)
        """
        if self.client is None:
            return None

        try:
            cached = await self.client.get(report_key(timeframe))
            if cached:
                return RewardAnomalyResponse.model_validate(json.loads(cached))
            return None
        except redis.RedisError as e:
            logger.warning("Redis GET failed for report %s: %s", timeframe, e)
            return None
        except ValueError as e:
            # covers JSON decode errors and schema drift between deployments
            logger.warning("Discarding unreadable cached report %s: %s", timeframe, e)
            return None

    async def cache_report(self, timeframe: str, report: RewardAnomalyResponse, ttl: float) -> bool:
        """
        Cache a rendered report with TTL.
        Time Complexity: O(1)
        """
        if self.client is None or ttl <= 0:
            return False

        try:
            await self.client.set(
                report_key(timeframe),
                safe_json_dumps(report.model_dump(mode="json")),
                px=max(1, int(ttl * 1000)),
            )
            return True
        except redis.RedisError as e:
            logger.warning("Redis SET failed for report %s: %s", timeframe, e)
            return False

    async def invalidate_report(self, timeframe: str) -> bool:
        if self.client is None:
            return False

        try:
            await self.client.delete(report_key(timeframe))
            return True
        except redis.RedisError as e:
            logger.warning("Redis DEL failed for report %s: %s", timeframe, e)
            return False
