# app/db/redis_client.py
import json
import logging
from datetime import date, datetime
from typing import Any, Optional

import redis.asyncio as redis

from app.core.config import settings

logger = logging.getLogger(__name__)


class RedisHolder:
    client: Optional[redis.Redis] = None

redis_holder = RedisHolder()


async def connect_to_redis() -> Optional[redis.Redis]:
    """Connect if REDIS_URL is configured; features degrade to local-only otherwise."""
    if not settings.REDIS_URL:
        logger.info("REDIS_URL not set - shared report cache disabled")
        return None

    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        await client.ping()
    except redis.RedisError as e:
        logger.warning("Redis connection failed, shared report cache disabled: %s", e)
        await client.aclose()
        return None

    redis_holder.client = client
    logger.info("Redis connected successfully")
    return client


async def close_redis_connection():
    if redis_holder.client is not None:
        await redis_holder.client.aclose()
        redis_holder.client = None


def datetime_serializer(obj):
    """Convert datetime/date objects to ISO format strings"""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Type {type(obj)} not serializable")


def safe_json_dumps(data: Any) -> str:
    """Safely serialize data to JSON, handling datetime objects"""
    return json.dumps(data, default=datetime_serializer)
