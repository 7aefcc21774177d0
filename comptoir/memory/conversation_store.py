# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
ConversationStore — Durable conversation history fronted by the cache.

Reads hit ConversationCache first and fall back to SQL. Appends insert
rows and bump last_activity in one transaction (no read-modify-write of
the list), then replace the cached list with the authoritative durable
one. A per-conversation lock turns "durable append + cache refresh" into
one step for every reader in this process; other processes may see the
previous list until the cache entry expires.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from typing import List, Optional, Sequence

from comptoir.core.errors import ValidationError
from comptoir.core.tenant import require_tenant_id, run_in_tenant_context
from comptoir.memory.chat_store import ChatMessage, ConversationCache
from comptoir.storage.models import Conversation
from comptoir.storage.repositories import ConversationRepository

logger = logging.getLogger("comptoir.conversations")


def parse_conversation_id(conversation_id) -> uuid.UUID:
    """Parse a client-supplied id; ValidationError on a malformed value."""
    if isinstance(conversation_id, uuid.UUID):
        return conversation_id
    try:
        return uuid.UUID(str(conversation_id))
    except (TypeError, ValueError):
        raise ValidationError(
            "Invalid conversation id",
            details={"conversation_id": str(conversation_id)},
        ) from None


class ConversationStore:
    """Conversation lifecycle and history for one tenant-scoped repository."""

    def __init__(self, repository: ConversationRepository, cache: ConversationCache) -> None:
        self._repo = repository
        self._cache = cache
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    # ── Lifecycle ─────────────────────────────────────────────

    async def create_conversation(
        self,
        user_id: str,
        tenant_id: str,
        title: Optional[str] = None,
    ) -> Conversation:
        conversation = await run_in_tenant_context(tenant_id, self._repo.create, user_id, tenant_id, title)
        logger.info("Created conversation %s for user %s", conversation.id, user_id)
        return conversation

    async def get_conversation(self, user_id: str, conversation_id) -> Optional[Conversation]:
        """Conversation owned by user_id in the ambient tenant, else None."""
        return await self._repo.get_owned(parse_conversation_id(conversation_id), user_id)

    async def resolve_conversation(
        self,
        user_id: str,
        tenant_id: str,
        conversation_id: Optional[str] = None,
    ) -> Conversation:
        """Existing conversation for a valid owned id, otherwise a new one."""
        if conversation_id:
            try:
                cid = parse_conversation_id(conversation_id)
            except ValidationError:
                logger.info("Ignoring malformed conversation id %r", conversation_id)
            else:
                existing = await run_in_tenant_context(tenant_id, self._repo.get_owned, cid, user_id)
                if existing is not None:
                    return existing
        return await self.create_conversation(user_id, tenant_id)

    # ── History ───────────────────────────────────────────────

    async def get_history(self, user_id: str, conversation_id) -> List[ChatMessage]:
        """
        Ordered message list, cache first.

        Unknown conversations yield an empty list; callers that must tell
        "not found" apart check get_conversation() first.
        """
        cid = str(parse_conversation_id(conversation_id))
        tenant_id = require_tenant_id()
        async with self._lock(cid):
            cached = await self._cache.get(tenant_id, user_id, cid)
            if cached is not None:
                return cached
            rows = await self._repo.messages.list_for(uuid.UUID(cid))
            history = [ChatMessage.from_record(r) for r in rows]
            if history:
                await self._cache.set(tenant_id, user_id, cid, history)
            return history

    async def append_message(
        self,
        user_id: str,
        tenant_id: str,
        conversation_id,
        message: ChatMessage,
    ) -> List[ChatMessage]:
        return await self.append_messages(user_id, tenant_id, conversation_id, [message])

    async def append_turn(
        self,
        user_id: str,
        tenant_id: str,
        conversation_id,
        user_message: ChatMessage,
        reply: ChatMessage,
    ) -> List[ChatMessage]:
        """Store a user message and its reply together."""
        return await self.append_messages(user_id, tenant_id, conversation_id, [user_message, reply])

    async def append_messages(
        self,
        user_id: str,
        tenant_id: str,
        conversation_id,
        messages: Sequence[ChatMessage],
    ) -> List[ChatMessage]:
        """
        Append in order and refresh the cache. Returns the full history.

        Durable failures propagate as DataIntegrityError; messages whose id
        is already stored are not appended again.
        """
        cid = parse_conversation_id(conversation_id)
        rows = [m.to_record(tenant_id) for m in messages]
        async with self._lock(str(cid)):
            stored = await run_in_tenant_context(tenant_id, self._repo.append_messages, cid, rows)
            history = [ChatMessage.from_record(r) for r in stored]
            if not await self._cache.set(tenant_id, user_id, str(cid), history):
                # A stale entry must not outlive a failed refresh
                await self._cache.invalidate(tenant_id, user_id, str(cid))
        return history
