# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Redis Connection Factory — Async client for the API process.

Workers build their own short-lived clients (see comptoir.workers.tasks)
because every job runs in a fresh event loop.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry
from redis.exceptions import (
    ConnectionError,
    TimeoutError,
    BusyLoadingError,
)

from comptoir.core.config import settings

_pool: Optional[aioredis.Redis] = None

_RETRY = Retry(ExponentialBackoff(cap=2, base=0.1), retries=3)
_RETRY_ERRORS = [ConnectionError, TimeoutError, BusyLoadingError, OSError]


def create_redis_client(url: Optional[str] = None) -> aioredis.Redis:
    """Build an async client with retry-on-error and bounded socket timeouts."""
    return aioredis.from_url(
        url or settings.REDIS_URL,
        decode_responses=True,
        max_connections=20,
        health_check_interval=15,
        retry_on_timeout=True,
        retry_on_error=_RETRY_ERRORS,
        retry=_RETRY,
        socket_connect_timeout=5,
        socket_timeout=10,
        socket_keepalive=True,
    )


async def get_redis_pool() -> aioredis.Redis:
    """Return the process-wide async Redis client."""
    global _pool
    if _pool is None:
        _pool = create_redis_client()
    return _pool


async def close_redis_pool() -> None:
    """Gracefully close the Redis connection pool."""
    global _pool
    if _pool is not None:
        await _pool.aclose()
        _pool = None


def inject_redis_for_test(redis_instance: aioredis.Redis) -> None:
    """Inject a fake/mock Redis instance (for testing only)."""
    global _pool
    _pool = redis_instance
