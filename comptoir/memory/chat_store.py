# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
ChatMessage & ConversationCache — Redis mirror of a conversation.

The durable message list lives in SQL (conversation_messages); Redis
keeps a TTL-bound copy of the whole list so a turn does not round-trip
to the database. Cache entries are always replaced whole, never patched,
so concurrent writers need no coordination.

Redis key: chatHistory:{tenant_id}:{user_id}:{conversation_id}
TTL: CHAT_HISTORY_TTL (default 1h)

A cache failure is logged and reported as a miss; it never reaches the
caller.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from comptoir.core.errors import ValidationError
from comptoir.kernel.namespace import get_history_key
from comptoir.storage.models import ConversationMessage

logger = logging.getLogger("comptoir.chat_store")

DEFAULT_HISTORY_TTL = 3600  # 1 hour
ROLES = ("user", "assistant", "system")


class ChatMessage:
    """One conversation entry: role, text, timestamp."""

    __slots__ = ("id", "role", "content", "ts")

    def __init__(
        self,
        role: str,
        content: str,
        *,
        msg_id: Optional[str] = None,
        ts: Optional[float] = None,
    ):
        if role not in ROLES:
            raise ValidationError(f"Unknown message role: {role!r}")
        self.id = msg_id or str(uuid.uuid4())
        self.role = role
        self.content = content
        self.ts = ts or time.time()

    def __repr__(self) -> str:
        return f"ChatMessage({self.role!r}, {self.content[:30]!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "ts": self.ts,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> ChatMessage:
        return cls(
            role=d["role"],
            content=d.get("content", ""),
            msg_id=d.get("id"),
            ts=d.get("ts"),
        )

    @classmethod
    def from_record(cls, row: ConversationMessage) -> ChatMessage:
        created = row.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return cls(row.role, row.content, msg_id=str(row.id), ts=created.timestamp())

    def to_record(self, tenant_id: str) -> ConversationMessage:
        return ConversationMessage(
            id=uuid.UUID(self.id),
            tenant_id=tenant_id,
            role=self.role,
            content=self.content,
            created_at=datetime.fromtimestamp(self.ts, tz=timezone.utc),
        )


class ConversationCache:
    """Whole-list conversation mirror in Redis."""

    def __init__(self, redis: aioredis.Redis, ttl: int = DEFAULT_HISTORY_TTL) -> None:
        self._redis = redis
        self._ttl = ttl

    async def get(self, tenant_id: str, user_id: str, conversation_id: str) -> Optional[List[ChatMessage]]:
        """Cached list, or None on a miss or any cache failure."""
        key = get_history_key(tenant_id, user_id, conversation_id)
        try:
            raw = await self._redis.get(key)
            if raw is None:
                return None
            return [ChatMessage.from_dict(d) for d in json.loads(raw)]
        except (RedisError, OSError, ValueError, KeyError, ValidationError) as e:
            logger.warning("History cache read failed for %s: %s", key, e)
            return None

    async def set(
        self, tenant_id: str, user_id: str, conversation_id: str, messages: List[ChatMessage]
    ) -> bool:
        key = get_history_key(tenant_id, user_id, conversation_id)
        payload = json.dumps([m.to_dict() for m in messages], ensure_ascii=False)
        try:
            await self._redis.set(key, payload, ex=self._ttl)
            return True
        except (RedisError, OSError) as e:
            logger.warning("History cache write failed for %s: %s", key, e)
            return False

    async def invalidate(self, tenant_id: str, user_id: str, conversation_id: str) -> None:
        key = get_history_key(tenant_id, user_id, conversation_id)
        try:
            await self._redis.delete(key)
        except (RedisError, OSError) as e:
            logger.warning("History cache invalidation failed for %s: %s", key, e)
