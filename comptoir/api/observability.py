# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Observability API — Metrics and health check.

Counters are per process. Turn, intent and response-cache counters are
incremented by the chat workers, so the API process only reports its own
request and enqueue counters.
"""

from __future__ import annotations

import logging

from redis.exceptions import RedisError

from fastapi import APIRouter

from comptoir.core.context import get_platform_context
from comptoir.core.metrics import platform_metrics
from comptoir.kernel.namespace import get_failed_jobs_key
from comptoir.workers.jobs import CHAT_QUEUE, SUMMARY_QUEUE

logger = logging.getLogger("comptoir.api")

router = APIRouter(tags=["observability"])


@router.get("/health")
async def health_check():
    """Health check with component status and failed-job counts."""
    ctx = get_platform_context()
    redis_status = "connected"
    failed_jobs = {}
    try:
        await ctx.redis.ping()
        for queue in (CHAT_QUEUE, SUMMARY_QUEUE):
            failed_jobs[queue] = await ctx.redis.llen(get_failed_jobs_key(queue))
    except (RedisError, OSError) as e:
        logger.warning("Health check: Redis unavailable: %s", e)
        redis_status = "unavailable"

    return {
        "status": "ok" if redis_status == "connected" else "degraded",
        "version": "0.1.0",
        "redis": redis_status,
        "database": ctx.database.dialect,
        "failed_jobs": failed_jobs,
        "metrics": platform_metrics.snapshot(),
    }


@router.get("/api/metrics")
async def get_metrics():
    """Metrics of this API process (accepted chats and enqueue outcomes)."""
    return platform_metrics.snapshot()
