# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Failed-job ledger — Bounded Redis list of jobs that exhausted their attempts.

Written from Celery's synchronous failure hook, newest first, trimmed to
JOB_FAILED_RETENTION entries per queue.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional

import redis

from comptoir.core.config import settings
from comptoir.kernel.namespace import get_failed_jobs_key

logger = logging.getLogger("comptoir.jobs.ledger")


class FailedJobLedger:
    def __init__(self, client: redis.Redis, retention: int = 200) -> None:
        self._client = client
        self._retention = retention

    @classmethod
    def from_settings(cls) -> "FailedJobLedger":
        client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True, socket_timeout=5)
        return cls(client, retention=settings.JOB_FAILED_RETENTION)

    def record(
        self,
        queue_name: str,
        job_id: str,
        payload: Optional[Dict[str, Any]],
        error: BaseException,
    ) -> None:
        payload = payload or {}
        entry = {
            "job_id": job_id,
            "tenant_id": payload.get("tenant_id"),
            "conversation_id": payload.get("conversation_id"),
            "error": repr(error)[:500],
            "failed_at": time.time(),
        }
        key = get_failed_jobs_key(queue_name)
        pipe = self._client.pipeline()
        pipe.lpush(key, json.dumps(entry, ensure_ascii=False))
        pipe.ltrim(key, 0, self._retention - 1)
        pipe.execute()

    def recent(self, queue_name: str, limit: int = 20) -> List[Dict[str, Any]]:
        raw = self._client.lrange(get_failed_jobs_key(queue_name), 0, limit - 1)
        return [json.loads(r) for r in raw]

    def count(self, queue_name: str) -> int:
        return self._client.llen(get_failed_jobs_key(queue_name))
