# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
JobQueue — Enqueue jobs and read their state.

Celery's publish and result calls are synchronous; they run in a thread
so the event loop keeps serving. Each job id is mapped to its tenant in
Redis so state lookups never reveal another tenant's job.

Fire-and-forget sends (``send_summary``) are tracked so a worker can
``drain()`` them before its event loop closes; their failures are logged,
never raised to the sender.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Optional, Set

import redis.asyncio as aioredis
from celery import Celery
from celery.result import AsyncResult
from redis.exceptions import RedisError

from comptoir.core.config import settings
from comptoir.core.errors import UpstreamServiceError, ValidationError
from comptoir.core.metrics import platform_metrics
from comptoir.workers.celery_app import celery_app
from comptoir.workers.jobs import (
    CHAT_QUEUE,
    SUMMARY_QUEUE,
    TASK_FOR_QUEUE,
    ChatJob,
    JobHandle,
    JobPayload,
    JobStatus,
    SummaryJob,
    job_state,
)

logger = logging.getLogger("comptoir.jobs")


def _owner_key(job_id: str) -> str:
    return f"comptoir:jobs:owner:{job_id}"


class JobQueue:
    def __init__(
        self,
        app: Optional[Celery] = None,
        redis: Optional[aioredis.Redis] = None,
    ) -> None:
        self._app = app or celery_app
        self._redis = redis
        self._background: Set[asyncio.Task] = set()

    # ── Enqueue ───────────────────────────────────────────────

    async def enqueue(self, queue_name: str, payload: JobPayload, **options: Any) -> JobHandle:
        """
        Publish payload on queue_name and return its handle.

        Raises:
            ValidationError: unknown queue.
            UpstreamServiceError: broker unreachable.
        """
        task_name = TASK_FOR_QUEUE.get(queue_name)
        if task_name is None:
            raise ValidationError(f"Unknown queue: {queue_name}")
        job_id = options.pop("job_id", None) or str(uuid.uuid4())
        body = payload.model_dump(mode="json")

        def _publish():
            return self._app.send_task(
                task_name,
                args=[body],
                queue=queue_name,
                task_id=job_id,
                **options,
            )

        try:
            await asyncio.to_thread(_publish)
        except Exception as e:
            platform_metrics.inc(f"jobs.enqueue_failed:{queue_name}")
            logger.error("Enqueue on %s failed: %s", queue_name, e)
            raise UpstreamServiceError("Job queue unavailable", details={"queue": queue_name}) from e

        await self._remember_owner(job_id, payload.tenant_id)
        platform_metrics.inc(f"jobs.enqueued:{queue_name}")
        logger.info("Enqueued %s job %s (conversation=%s)", queue_name, job_id, payload.conversation_id)
        return JobHandle(job_id=job_id, queue=queue_name)

    async def enqueue_chat(self, job: ChatJob, **options: Any) -> JobHandle:
        return await self.enqueue(CHAT_QUEUE, job, **options)

    async def enqueue_summary(self, job: SummaryJob, **options: Any) -> JobHandle:
        return await self.enqueue(SUMMARY_QUEUE, job, **options)

    def send_summary(self, job: SummaryJob) -> asyncio.Task:
        """Enqueue without awaiting. Errors go to the log."""
        task = asyncio.create_task(self.enqueue_summary(job))
        self._background.add(task)
        task.add_done_callback(self._on_sent)
        return task

    def _on_sent(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            logger.warning("Summary enqueue cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Summary job could not be enqueued: %s", exc)

    async def drain(self) -> None:
        """Wait for pending fire-and-forget sends."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ── State ─────────────────────────────────────────────────

    async def _remember_owner(self, job_id: str, tenant_id: str) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(_owner_key(job_id), tenant_id, ex=settings.JOB_RESULT_EXPIRES)
        except (RedisError, OSError) as e:
            logger.warning("Could not record owner of job %s: %s", job_id, e)

    async def owner_of(self, job_id: str) -> Optional[str]:
        if self._redis is None:
            return None
        try:
            return await self._redis.get(_owner_key(job_id))
        except (RedisError, OSError) as e:
            logger.warning("Could not read owner of job %s: %s", job_id, e)
            return None

    async def job_status(self, job_id: str) -> JobStatus:
        def _read():
            result = AsyncResult(job_id, app=self._app)
            return result.state, result.result

        try:
            state, value = await asyncio.to_thread(_read)
        except Exception as e:
            raise UpstreamServiceError("Job state unavailable") from e

        status = JobStatus(job_id=job_id, state=job_state(state), tenant_id=await self.owner_of(job_id))
        if isinstance(value, dict):
            status.result = value
        return status
