# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
SummaryEngine — Compress a conversation into summary, key points, entities.

Each run supersedes the previous summary entirely; ``save`` upserts by
(tenant, conversation), so re-running a summary job converges to one row.

Model output is parsed in three steps:
  1. strict JSON (code fences stripped)
  2. regex scraping of the "summary", "keyPoints", "entities" fields
  3. degraded placeholder
Only LLM infrastructure errors escape, so the job can retry.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

from comptoir.core.errors import NotFoundError
from comptoir.core.tenant import run_in_tenant_context
from comptoir.memory.chat_store import ChatMessage
from comptoir.memory.conversation_store import parse_conversation_id
from comptoir.storage.models import ConversationSummary
from comptoir.storage.repositories import ConversationRepository, SummaryRepository

logger = logging.getLogger("comptoir.summary")

PLACEHOLDER_SUMMARY = "Impossible d'extraire le résumé."

SUMMARY_PROMPT = """Analyse la conversation suivante et fournis un résumé concis, les points clés et les entités importantes (produits, clients, employés, montants, dates).

Conversation :
{transcript}

Réponds **uniquement** au format JSON suivant, sans texte avant ou après :
{{
  "summary": "Résumé concis",
  "keyPoints": ["Point clé 1", "Point clé 2"],
  "entities": [
    {{"type": "produit", "value": "Nom du produit"}},
    {{"type": "client", "value": "Nom du client"}}
  ]
}}"""

_SUMMARY_FIELD = re.compile(r'"summary"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)
_KEY_POINTS_FIELD = re.compile(r'"keyPoints"\s*:\s*(\[.*?\])', re.DOTALL)
_ENTITIES_FIELD = re.compile(r'"entities"\s*:\s*(\[.*?\])', re.DOTALL)

MessageLike = Union[ChatMessage, Dict[str, Any]]


@dataclass
class ConversationDigest:
    summary: str
    key_points: List[str] = field(default_factory=list)
    entities: List[Dict[str, str]] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.summary == PLACEHOLDER_SUMMARY


def _strip_fences(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        if len(lines) > 2:
            cleaned = "\n".join(lines[1:-1]).strip()
    return cleaned


def _clean_points(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(p).strip() for p in value if str(p).strip()]


def _clean_entities(value: Any) -> List[Dict[str, str]]:
    if not isinstance(value, list):
        return []
    entities = []
    for item in value:
        if isinstance(item, dict) and item.get("type") and item.get("value"):
            entities.append({"type": str(item["type"]), "value": str(item["value"])})
    return entities


def _loads_list(match: Optional[re.Match]) -> Any:
    if match is None:
        return []
    try:
        return json.loads(match.group(1))
    except ValueError:
        return []


def parse_digest(raw: Optional[str]) -> ConversationDigest:
    """Best-effort parse of the model's answer. Never raises."""
    cleaned = _strip_fences(raw or "")
    try:
        data = json.loads(cleaned)
    except ValueError:
        data = None

    if isinstance(data, dict):
        summary = data.get("summary")
        return ConversationDigest(
            summary=summary.strip() if isinstance(summary, str) and summary.strip() else PLACEHOLDER_SUMMARY,
            key_points=_clean_points(data.get("keyPoints")),
            entities=_clean_entities(data.get("entities")),
        )

    summary_match = _SUMMARY_FIELD.search(cleaned)
    summary = None
    if summary_match:
        try:
            summary = json.loads(f'"{summary_match.group(1)}"')
        except ValueError:
            summary = summary_match.group(1)
    digest = ConversationDigest(
        summary=summary.strip() if summary and summary.strip() else PLACEHOLDER_SUMMARY,
        key_points=_clean_points(_loads_list(_KEY_POINTS_FIELD.search(cleaned))),
        entities=_clean_entities(_loads_list(_ENTITIES_FIELD.search(cleaned))),
    )
    if digest.degraded:
        logger.warning("Summary output could not be parsed: %r", cleaned[:200])
    return digest


def _as_message(m: MessageLike) -> ChatMessage:
    return m if isinstance(m, ChatMessage) else ChatMessage.from_dict(m)


class SummaryEngine:
    def __init__(
        self,
        llm,
        summaries: SummaryRepository,
        conversations: ConversationRepository,
        *,
        temperature: float = 0.2,
        max_tokens: int = 1000,
    ) -> None:
        self._llm = llm
        self._summaries = summaries
        self._conversations = conversations
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def summarize(self, conversation_id: str, messages: Sequence[MessageLike]) -> ConversationDigest:
        transcript = "\n".join(f"{m.role}: {m.content}" for m in map(_as_message, messages))
        raw = await self._llm.complete(
            SUMMARY_PROMPT.format(transcript=transcript),
            task_type="summarize",
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        digest = parse_digest(raw)
        logger.info(
            "Summarized conversation %s (%d key points, %d entities)",
            conversation_id, len(digest.key_points), len(digest.entities),
        )
        return digest

    async def save(
        self,
        tenant_id: str,
        conversation_id,
        messages: Optional[Sequence[MessageLike]] = None,
        user_id: Optional[str] = None,
    ) -> Optional[ConversationSummary]:
        """Summarize and upsert. Returns None when there is nothing to summarize."""
        return await run_in_tenant_context(tenant_id, self._save, tenant_id, conversation_id, messages, user_id)

    async def _save(self, tenant_id, conversation_id, messages, user_id) -> Optional[ConversationSummary]:
        cid = parse_conversation_id(conversation_id)
        conversation = await self._conversations.get(cid)
        if conversation is None:
            raise NotFoundError("Conversation not found", details={"conversation_id": str(cid)})

        if messages:
            history = [_as_message(m) for m in messages]
        else:
            rows = await self._conversations.messages.list_for(cid)
            history = [ChatMessage.from_record(r) for r in rows]
        if not history:
            logger.warning("Conversation %s has no messages to summarize", cid)
            return None

        digest = await self.summarize(str(cid), history)
        return await self._summaries.upsert_summary(
            tenant_id,
            cid,
            user_id=user_id or conversation.user_id,
            summary=digest.summary,
            key_points=digest.key_points,
            entities=digest.entities,
            last_message_timestamp=datetime.fromtimestamp(history[-1].ts, tz=timezone.utc),
        )

    async def latest(self, conversation_id) -> Optional[ConversationSummary]:
        return await self._summaries.for_conversation(parse_conversation_id(conversation_id))

    async def list_for_period(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ConversationSummary]:
        return await self._summaries.for_period(start, end)
