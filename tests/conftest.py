# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Shared test fixtures for all Comptoir tests.
"""

import uuid
from typing import Any, Dict, List, Optional

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio

from comptoir.core.context import init_platform_context
from comptoir.core.errors import UpstreamServiceError
from comptoir.kernel.redis_client import inject_redis_for_test
from comptoir.storage.database import Database
from comptoir.workers.jobs import JobHandle, JobState, JobStatus


class FakeLLM:
    """
    Scripted stand-in for LLMService.

    Replies are picked by task_type ("route", "summarize", "chat"); a
    reply may be a string, an exception instance (raised) or a callable
    taking the messages.
    """

    def __init__(self, **replies: Any) -> None:
        self.replies: Dict[str, Any] = {"route": "fallback", "summarize": "{}", "chat": "Conseil"}
        self.replies.update(replies)
        self.call_log: List[Dict[str, Any]] = []

    def calls_for(self, task_type: str) -> List[Dict[str, Any]]:
        return [c for c in self.call_log if c["task_type"] == task_type]

    async def complete(self, prompt_or_messages, *, task_type: str = "chat", **kwargs: Any) -> str:
        self.call_log.append({"task_type": task_type, "messages": prompt_or_messages, **kwargs})
        reply = self.replies.get(task_type, "")
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(prompt_or_messages)
        return reply


class FakeQueue:
    """In-memory JobQueue: records what would be published."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.chat_jobs: List[Any] = []
        self.summary_jobs: List[Any] = []
        self.statuses: Dict[str, JobStatus] = {}

    async def enqueue_chat(self, job, **options) -> JobHandle:
        if self.fail:
            raise UpstreamServiceError("Job queue unavailable", details={"queue": "chat"})
        handle = JobHandle(job_id=str(uuid.uuid4()), queue="chat")
        self.chat_jobs.append(job)
        self.statuses[handle.job_id] = JobStatus(
            job_id=handle.job_id, state=JobState.WAITING, tenant_id=job.tenant_id,
        )
        return handle

    async def enqueue_summary(self, job, **options) -> JobHandle:
        self.summary_jobs.append(job)
        return JobHandle(job_id=str(uuid.uuid4()), queue="summary")

    def send_summary(self, job) -> None:
        self.summary_jobs.append(job)

    async def drain(self) -> None:
        return None

    async def owner_of(self, job_id: str) -> Optional[str]:
        status = self.statuses.get(job_id)
        return status.tenant_id if status else None

    async def job_status(self, job_id: str) -> JobStatus:
        return self.statuses.get(job_id) or JobStatus(job_id=job_id, state=JobState.WAITING)


@pytest.fixture
def mock_redis():
    """Provide a FakeRedis async instance on its own server."""
    r = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    inject_redis_for_test(r)
    return r


@pytest_asyncio.fixture
async def database():
    """In-memory SQLite database with every table created."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture
def platform(mock_redis, database, fake_llm, fake_queue):
    """PlatformContext wired to FakeRedis, SQLite and the fakes above."""
    return init_platform_context(mock_redis, database, llm=fake_llm, queue=fake_queue)


@pytest.fixture
def mock_tenant_id() -> str:
    """Provide a test tenant ID."""
    return "test_tenant"


@pytest.fixture
def mock_user_id() -> str:
    return "user_001"
