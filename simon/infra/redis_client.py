from __future__ import annotations

import logging

import redis

from simon.config import settings_from_env

logger = logging.getLogger(__name__)


def get_redis_url() -> str:
    return settings_from_env().redis_url


def create_redis() -> redis.Redis:
    # decode_responses=True => strings in/out instead of bytes
    return redis.Redis.from_url(get_redis_url(), decode_responses=True)


def redis_available(r: redis.Redis) -> bool:
    """Capability check: can we actually talk to this server?"""

    try:
        return bool(r.ping())
    except redis.RedisError as e:
        logger.warning("Redis unavailable at startup (%s); scores will be kept in memory", e)
        return False
