# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Platform Context — Holds every core component reference.

The API initializes one at startup; each worker job builds its own,
bound to that job's event loop.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis

from comptoir.agents.dispatch import BotDispatch
from comptoir.agents.router import IntentRouter
from comptoir.chat.orchestrator import Orchestrator
from comptoir.chat.suggestions import SuggestionService
from comptoir.chat.summary import SummaryEngine
from comptoir.core.config import settings
from comptoir.memory.chat_store import ConversationCache
from comptoir.memory.conversation_store import ConversationStore
from comptoir.memory.response_cache import ResponseCache
from comptoir.services.llm_service import LLMService
from comptoir.storage.database import Database
from comptoir.storage.repositories import Repositories
from comptoir.workers.queue import JobQueue


class PlatformContext:
    """
    Holds all runtime references for the platform.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        database: Database,
        llm: Optional[LLMService] = None,
        queue: Optional[JobQueue] = None,
    ) -> None:
        self.redis = redis
        self.database = database
        self.llm = llm or LLMService.from_settings()
        self.queue = queue or JobQueue(redis=redis)

        self.repos = Repositories.build(database.session_factory)
        self.conversations = ConversationStore(
            self.repos.conversations,
            ConversationCache(redis, ttl=settings.CHAT_HISTORY_TTL),
        )
        self.responses = ResponseCache(redis, ttl=settings.RESPONSE_CACHE_TTL)
        self.router = IntentRouter(self.llm, history_messages=settings.ROUTER_HISTORY_MESSAGES)
        self.dispatch = BotDispatch.default(self.repos, self.llm)
        self.orchestrator = Orchestrator(
            self.router,
            self.dispatch,
            self.responses,
            self.queue,
            summary_trigger_turns=settings.SUMMARY_TRIGGER_TURNS,
        )
        self.summaries = SummaryEngine(self.llm, self.repos.summaries, self.repos.conversations)
        self.suggestions = SuggestionService(self.repos.summaries)


# ── Global singleton ────────────────────────────────────────

_ctx: Optional[PlatformContext] = None


def init_platform_context(
    redis: aioredis.Redis,
    database: Database,
    llm: Optional[LLMService] = None,
    queue: Optional[JobQueue] = None,
) -> PlatformContext:
    global _ctx
    _ctx = PlatformContext(redis, database, llm=llm, queue=queue)
    return _ctx


def get_platform_context() -> PlatformContext:
    if _ctx is None:
        raise RuntimeError("PlatformContext not initialized. Call init_platform_context() first.")
    return _ctx
