"""Shared rate limiter instance.

Counters live in Redis when it answers a ping at startup so that limits
hold across worker processes. Otherwise the limiter keeps them in memory
(development and test environments).
"""

import logging

import redis as sync_redis
from redis.exceptions import RedisError
from slowapi import Limiter
from slowapi.util import get_remote_address

from routinely.config import settings

logger = logging.getLogger(__name__)


def _redis_reachable(url: str) -> bool:
    try:
        client = sync_redis.from_url(url, socket_connect_timeout=1)
        try:
            client.ping()
        finally:
            client.close()
    except (RedisError, OSError):
        return False
    return True


def _create_limiter() -> Limiter:
    default_limits = [settings.RATE_LIMIT_DEFAULT]

    if _redis_reachable(settings.REDIS_URL):
        logger.info("Rate limiter: Redis storage (%s)", settings.REDIS_URL)
        return Limiter(
            key_func=get_remote_address,
            default_limits=default_limits,
            storage_uri=settings.REDIS_URL,
        )

    logger.warning("Rate limiter: Redis unavailable, using in-memory storage")
    return Limiter(key_func=get_remote_address, default_limits=default_limits)


limiter = _create_limiter()
