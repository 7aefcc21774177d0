# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Worker tasks — Chat turns and conversation summaries.

Each Celery task validates its payload, then runs the job coroutine on a
fresh event loop inside the payload's tenant context, with a
PlatformContext built for that loop. Infrastructure failures are retried
with the queue's backoff policy; after the last attempt the job lands in
the failed-job ledger.

Chat jobs are idempotent: message ids derive from the job id, so a retry
after a successful append stores nothing twice.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

from celery import Task
from redis.exceptions import RedisError

from comptoir.core.config import settings
from comptoir.core.context import PlatformContext
from comptoir.core.errors import AuthorizationError, NotFoundError, ValidationError
from comptoir.core.metrics import platform_metrics
from comptoir.core.tenant import run_in_tenant_context
from comptoir.kernel.redis_client import create_redis_client
from comptoir.memory.chat_store import ChatMessage
from comptoir.resilience.retry import CHAT_RETRY_POLICY, SUMMARY_RETRY_POLICY, RetryPolicy
from comptoir.storage.database import Database
from comptoir.workers.celery_app import celery_app
from comptoir.workers.jobs import (
    CHAT_QUEUE,
    CHAT_TASK,
    SUMMARY_QUEUE,
    SUMMARY_TASK,
    ChatJob,
    JobPayload,
    SummaryJob,
)
from comptoir.workers.ledger import FailedJobLedger

logger = logging.getLogger("comptoir.workers")

# Retrying cannot change the outcome of these
NON_RETRYABLE = (ValidationError, NotFoundError, AuthorizationError)

JobHandler = Callable[[PlatformContext, Any, str], Awaitable[Dict[str, Any]]]


def message_id(job_id: str, role: str) -> str:
    """Stable id for the message a job writes."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"comptoir:{job_id}:{role}"))


# ── Job bodies ──────────────────────────────────────────────


async def process_chat_turn(ctx: PlatformContext, job: ChatJob, job_id: str) -> Dict[str, Any]:
    """Answer one user message and persist the turn."""
    history = await ctx.conversations.get_history(job.user_id, job.conversation_id)
    user_data = dict(job.user_context)
    user_data.update(tenant_id=job.tenant_id, conversation_id=job.conversation_id)

    reply = await ctx.orchestrator.run_turn(job.user_id, job.message, history, user_data)

    await ctx.conversations.append_turn(
        job.user_id,
        job.tenant_id,
        job.conversation_id,
        ChatMessage("user", job.message, msg_id=message_id(job_id, "user"), ts=job.submitted_at),
        ChatMessage("assistant", reply, msg_id=message_id(job_id, "assistant"), ts=max(time.time(), job.submitted_at)),
    )
    logger.info(
        "Chat job %s done", job_id,
        extra={"job_id": job_id, "conversation_id": job.conversation_id},
    )
    return {
        "tenant_id": job.tenant_id,
        "conversation_id": job.conversation_id,
        "response": reply,
    }


async def generate_summary(ctx: PlatformContext, job: SummaryJob, job_id: str) -> Dict[str, Any]:
    """Summarize a conversation and upsert the result."""
    row = await ctx.summaries.save(job.tenant_id, job.conversation_id, job.messages or None, user_id=job.user_id)
    if row is None:
        return {"tenant_id": job.tenant_id, "conversation_id": job.conversation_id, "status": "skipped"}
    logger.info(
        "Summary job %s done", job_id,
        extra={"job_id": job_id, "conversation_id": job.conversation_id},
    )
    return {
        "tenant_id": job.tenant_id,
        "conversation_id": job.conversation_id,
        "status": "saved",
        "summary": row.summary,
    }


async def _with_platform(handler: JobHandler, job: JobPayload, job_id: str) -> Dict[str, Any]:
    """Run handler against a PlatformContext bound to the current loop."""
    redis = create_redis_client()
    database = Database(settings.DATABASE_URL)
    ctx = PlatformContext(redis, database)
    try:
        return await handler(ctx, job, job_id)
    finally:
        # Fire-and-forget sends must finish before the loop closes
        await ctx.queue.drain()
        await database.close()
        await redis.aclose()


# ── Celery plumbing ─────────────────────────────────────────


class TenantJobTask(Task):
    """Base task: tenant-bound execution, backoff retries, failure ledger."""

    job_retry_policy: RetryPolicy = CHAT_RETRY_POLICY
    queue_name: str = CHAT_QUEUE
    _ledger: Optional[FailedJobLedger] = None

    @property
    def ledger(self) -> FailedJobLedger:
        if self._ledger is None:
            self._ledger = FailedJobLedger.from_settings()
        return self._ledger

    def run_job(self, handler: JobHandler, job: JobPayload) -> Dict[str, Any]:
        job_id = self.request.id or str(uuid.uuid4())
        attempt = self.request.retries + 1
        logger.info(
            "Job %s attempt %d on %s", job_id, attempt, self.queue_name,
            extra={"job_id": job_id, "tenant_id": job.tenant_id},
        )
        try:
            return asyncio.run(run_in_tenant_context(job.tenant_id, _with_platform, handler, job, job_id))
        except NON_RETRYABLE:
            raise
        except Exception as e:
            if not self.job_retry_policy.can_retry(attempt):
                raise
            delay = self.job_retry_policy.next_delay(attempt)
            platform_metrics.inc(f"jobs.retried:{self.queue_name}")
            logger.warning(
                "Job %s failed (attempt %d/%d), retrying in %.1fs: %s",
                job_id, attempt, self.job_retry_policy.max_attempts, delay, e,
                extra={"job_id": job_id, "tenant_id": job.tenant_id},
            )
            raise self.retry(exc=e, countdown=delay)

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        platform_metrics.inc(f"jobs.failed:{self.queue_name}")
        payload = args[0] if args and isinstance(args[0], dict) else None
        logger.error(
            "Job %s failed permanently: %s", task_id, exc,
            extra={"job_id": task_id, "tenant_id": (payload or {}).get("tenant_id")},
        )
        try:
            self.ledger.record(self.queue_name, task_id, payload, exc)
        except RedisError as e:
            logger.error("Could not record failed job %s: %s", task_id, e)


@celery_app.task(
    bind=True,
    base=TenantJobTask,
    name=CHAT_TASK,
    max_retries=CHAT_RETRY_POLICY.max_retries,
    job_retry_policy=CHAT_RETRY_POLICY,
    queue_name=CHAT_QUEUE,
)
def process_chat_job(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    return self.run_job(process_chat_turn, ChatJob.model_validate(payload))


@celery_app.task(
    bind=True,
    base=TenantJobTask,
    name=SUMMARY_TASK,
    max_retries=SUMMARY_RETRY_POLICY.max_retries,
    job_retry_policy=SUMMARY_RETRY_POLICY,
    queue_name=SUMMARY_QUEUE,
)
def generate_summary_job(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    return self.run_job(generate_summary, SummaryJob.model_validate(payload))
