# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Job payloads — What travels through the broker.

Every payload carries tenant_id: the worker rebuilds the tenant context
from it before touching any data.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

CHAT_QUEUE = "chat"
SUMMARY_QUEUE = "summary"

CHAT_TASK = "comptoir.chat.process_turn"
SUMMARY_TASK = "comptoir.summary.generate"

TASK_FOR_QUEUE = {
    CHAT_QUEUE: CHAT_TASK,
    SUMMARY_QUEUE: SUMMARY_TASK,
}


class JobPayload(BaseModel):
    tenant_id: str = Field(..., min_length=1, description="Tenant the job runs for")
    user_id: str = Field(..., min_length=1)
    conversation_id: str = Field(..., description="Conversation UUID")


class ChatJob(JobPayload):
    message: str = Field(..., description="User message text")
    user_context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Snapshot of user data handed to the handlers (email, role, profile)",
    )
    submitted_at: float = Field(default_factory=time.time)


class SummaryJob(JobPayload):
    messages: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Transcript to summarize; empty means load it from storage",
    )


class JobState(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


_CELERY_STATES = {
    "PENDING": JobState.WAITING,
    "RECEIVED": JobState.WAITING,
    "RETRY": JobState.WAITING,
    "STARTED": JobState.ACTIVE,
    "SUCCESS": JobState.COMPLETED,
    "FAILURE": JobState.FAILED,
    "REVOKED": JobState.FAILED,
}


def job_state(celery_state: str) -> JobState:
    return _CELERY_STATES.get(celery_state, JobState.WAITING)


@dataclass
class JobHandle:
    job_id: str
    queue: str


@dataclass
class JobStatus:
    job_id: str
    state: JobState
    tenant_id: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
