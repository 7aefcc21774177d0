# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
ResponseCache — Short-lived cache of assistant replies.

Keyed by (tenant_id, user_id, message text) only: the same text sent by
the same user in two conversations shares one entry for
RESPONSE_CACHE_TTL.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from comptoir.kernel.namespace import get_response_key

logger = logging.getLogger("comptoir.response_cache")

DEFAULT_RESPONSE_TTL = 600  # 10 minutes


class ResponseCache:
    def __init__(self, redis: aioredis.Redis, ttl: int = DEFAULT_RESPONSE_TTL) -> None:
        self._redis = redis
        self._ttl = ttl

    async def get(self, tenant_id: str, user_id: str, message: str) -> Optional[str]:
        try:
            return await self._redis.get(get_response_key(tenant_id, user_id, message))
        except (RedisError, OSError) as e:
            logger.warning("Response cache read failed: %s", e)
            return None

    async def set(self, tenant_id: str, user_id: str, message: str, response: str) -> None:
        try:
            await self._redis.set(get_response_key(tenant_id, user_id, message), response, ex=self._ttl)
        except (RedisError, OSError) as e:
            logger.warning("Response cache write failed: %s", e)
