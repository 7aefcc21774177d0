# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Orchestrator — One user turn: cache → classify → dispatch → summary trigger.

run_turn always returns text. Anything unexpected after the cache lookup
becomes the static apology, because the surrounding job retries only on
infrastructure failures of its own (storage), not on a bad answer.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Sequence

from comptoir.agents.base import BotRequest
from comptoir.agents.dispatch import BotDispatch
from comptoir.agents.router import IntentRouter
from comptoir.core.metrics import platform_metrics
from comptoir.core.tenant import get_current_tenant_id
from comptoir.memory.chat_store import ChatMessage
from comptoir.memory.response_cache import ResponseCache
from comptoir.workers.jobs import SummaryJob

logger = logging.getLogger("comptoir.orchestrator")

APOLOGY = (
    "Je suis désolé, mais je rencontre actuellement des difficultés à traiter votre "
    "demande. Veuillez réessayer dans quelques instants."
)


class Orchestrator:
    def __init__(
        self,
        router: IntentRouter,
        dispatch: BotDispatch,
        responses: ResponseCache,
        queue,
        *,
        summary_trigger_turns: int = 5,
    ) -> None:
        self._router = router
        self._dispatch = dispatch
        self._responses = responses
        self._queue = queue
        self._summary_trigger_turns = summary_trigger_turns

    def should_summarize(self, history: Sequence[ChatMessage]) -> bool:
        """True once this turn takes the conversation past the trigger."""
        turns = sum(1 for m in history if m.role == "user") + 1
        return turns > self._summary_trigger_turns

    async def run_turn(
        self,
        user_id: str,
        message: str,
        history: Sequence[ChatMessage],
        user_data: Dict[str, Any],
    ) -> str:
        tenant_id = get_current_tenant_id() or user_data.get("tenant_id")
        cached = await self._cached_reply(tenant_id, user_id, message)
        if cached is not None:
            platform_metrics.inc("chat.response_cache_hit")
            logger.info("Response cache hit for user %s", user_id)
            return cached

        start = time.time()
        try:
            label = await self._router.classify(message, history)
            platform_metrics.inc(f"intent:{label.value}")

            request = BotRequest(
                user_id=user_id,
                message=message,
                history=list(history),
                tenant_data=dict(user_data),
            )
            reply = await self._dispatch.dispatch(label, request)
            if tenant_id:
                await self._responses.set(tenant_id, user_id, message, reply)
        except Exception:
            platform_metrics.inc("chat.turn_failed")
            logger.exception("Turn failed for user %s", user_id)
            return APOLOGY

        if self.should_summarize(history):
            try:
                self._request_summary(user_id, message, reply, history, user_data)
            except Exception:
                logger.exception("Summary request failed for user %s", user_id)

        platform_metrics.inc("chat.turns")
        platform_metrics.observe("turn_latency_ms", (time.time() - start) * 1000)
        return reply

    async def _cached_reply(self, tenant_id: Optional[str], user_id: str, message: str) -> Optional[str]:
        """Turns without a tenant are never served from the cache."""
        if not tenant_id:
            return None
        return await self._responses.get(tenant_id, user_id, message)

    def _request_summary(
        self,
        user_id: str,
        message: str,
        reply: str,
        history: Sequence[ChatMessage],
        user_data: Dict[str, Any],
    ) -> None:
        tenant_id: Optional[str] = user_data.get("tenant_id") or get_current_tenant_id()
        conversation_id = user_data.get("conversation_id")
        if not tenant_id or not conversation_id:
            logger.warning("Summary skipped: turn has no tenant or conversation id")
            return

        transcript = [m.to_dict() for m in history]
        transcript.append(ChatMessage("user", message).to_dict())
        transcript.append(ChatMessage("assistant", reply).to_dict())
        job = SummaryJob(
            tenant_id=tenant_id,
            user_id=user_id,
            conversation_id=str(conversation_id),
            messages=transcript,
        )
        self._queue.send_summary(job)
        logger.info("Summary requested for conversation %s", conversation_id)
