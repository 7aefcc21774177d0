# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Chat API — Accept turns for background processing, read history.

POST /chat answers 202 immediately; the reply is produced by a chat job
and appended to the conversation, where GET /chat/history picks it up.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from comptoir.api.deps import get_current_tenant, get_current_user
from comptoir.core.context import get_platform_context
from comptoir.core.errors import NotFoundError
from comptoir.core.metrics import platform_metrics
from comptoir.core.tenant import TenantContext
from comptoir.memory.conversation_store import parse_conversation_id
from comptoir.workers.jobs import ChatJob

logger = logging.getLogger("comptoir.api.chat")

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000, description="User message")
    conversation_id: Optional[str] = Field(None, description="Existing conversation to continue")


class ChatAccepted(BaseModel):
    message: str = "Message reçu, traitement en cours"
    job_id: str
    conversation_id: str


@router.post("", status_code=202, response_model=ChatAccepted)
async def post_chat(
    req: ChatRequest,
    user: TenantContext = Depends(get_current_user),
):
    """Queue one user turn. A missing, malformed or foreign id starts a new conversation."""
    ctx = get_platform_context()
    conversation = await ctx.conversations.resolve_conversation(
        user.user_id, user.tenant_id, req.conversation_id,
    )
    job = ChatJob(
        tenant_id=user.tenant_id,
        user_id=user.user_id,
        conversation_id=str(conversation.id),
        message=req.message,
        user_context={"user_id": user.user_id, "roles": list(user.roles)},
    )
    handle = await ctx.queue.enqueue_chat(job)
    platform_metrics.inc("chat.accepted")
    return ChatAccepted(job_id=handle.job_id, conversation_id=str(conversation.id))


@router.get("/history/{conversation_id}")
async def get_chat_history(
    conversation_id: str,
    user: TenantContext = Depends(get_current_user),
):
    """Ordered messages of a conversation owned by the caller."""
    ctx = get_platform_context()
    cid = parse_conversation_id(conversation_id)
    conversation = await ctx.conversations.get_conversation(user.user_id, cid)
    if conversation is None:
        raise NotFoundError("Conversation not found", details={"conversation_id": str(cid)})
    history = await ctx.conversations.get_history(user.user_id, cid)
    return {
        "conversation_id": str(cid),
        "title": conversation.title,
        "messages": [m.to_dict() for m in history],
    }


@router.get("/suggestions/{conversation_id}")
async def get_chat_suggestions(
    conversation_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
):
    ctx = get_platform_context()
    cid = parse_conversation_id(conversation_id)
    return {"conversation_id": str(cid), "suggestions": await ctx.suggestions.suggest(cid)}


@router.get("/jobs/{job_id}")
async def get_chat_job(
    job_id: str,
    tenant: TenantContext = Depends(get_current_tenant),
):
    """State of a job submitted by the caller's tenant."""
    ctx = get_platform_context()
    status = await ctx.queue.job_status(job_id)
    if status.tenant_id != tenant.tenant_id:
        raise NotFoundError("Job not found", details={"job_id": job_id})
    body = {"job_id": status.job_id, "state": status.state.value}
    if status.result is not None:
        body["result"] = status.result
    return body
