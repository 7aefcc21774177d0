# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Intent Router — Classify a user message into a closed label set.

The LLM answers with a single category name; ``parse_intent`` maps that
raw text onto IntentLabel. The mapping is pure and total: anything that
does not name exactly one label becomes FALLBACK. Classification is a
best-effort routing aid, so provider failures also become FALLBACK.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from enum import Enum
from typing import Dict, List, Optional, Sequence

from comptoir.memory.chat_store import ChatMessage

logger = logging.getLogger("comptoir.router")


class IntentLabel(str, Enum):
    ACCOUNTING = "accounting"
    BUSINESS_DATA = "business-data"
    MARKETING = "marketing"
    HR = "hr"
    INFO = "info"
    FALLBACK = "fallback"


ROUTER_PROMPT = """Tu es le routeur d'un assistant de gestion pour petites entreprises.
Classe le message de l'utilisateur dans une seule catégorie :
- accounting : comptabilité, finances, chiffre d'affaires, dépenses, bénéfices
- business-data : produits, stocks, ventes, clients, commandes
- marketing : marketing, publicité, réseaux sociaux, promotion
- hr : employés, recrutement, planning, performances
- info : informations générales sur l'entreprise ou le foyer
- fallback : tout ce qui ne correspond à aucune catégorie ci-dessus

Réponds uniquement avec le nom de la catégorie, sans explication."""

_ALIASES: Dict[str, IntentLabel] = {
    "accounting": IntentLabel.ACCOUNTING,
    "comptable": IntentLabel.ACCOUNTING,
    "comptabilite": IntentLabel.ACCOUNTING,
    "finance": IntentLabel.ACCOUNTING,
    "business-data": IntentLabel.BUSINESS_DATA,
    "business": IntentLabel.BUSINESS_DATA,
    "businessdata": IntentLabel.BUSINESS_DATA,
    "marketing": IntentLabel.MARKETING,
    "hr": IntentLabel.HR,
    "rh": IntentLabel.HR,
    "info": IntentLabel.INFO,
    "information": IntentLabel.INFO,
    "fallback": IntentLabel.FALLBACK,
    "autre": IntentLabel.FALLBACK,
    "other": IntentLabel.FALLBACK,
}

# Prefix matching only for aliases long enough to be unambiguous
_PREFIX_MIN = 5

MAX_MESSAGE_CHARS = 2000
HISTORY_ENTRY_CHARS = 200


def _normalize(raw: str) -> str:
    text = unicodedata.normalize("NFKD", raw.lower())
    text = "".join(c for c in text if not unicodedata.combining(c))
    return re.sub(r"[^a-z0-9\-]+", " ", text).strip()


def _label_for_token(token: str) -> Optional[IntentLabel]:
    token = token.strip("-")
    if token in _ALIASES:
        return _ALIASES[token]
    for alias, label in _ALIASES.items():
        if len(alias) >= _PREFIX_MIN and token.startswith(alias):
            return label
    return None


def parse_intent(raw: Optional[str]) -> IntentLabel:
    """Map raw model output onto IntentLabel. Never raises."""
    if not raw:
        return IntentLabel.FALLBACK
    cleaned = _normalize(raw)
    if cleaned in _ALIASES:
        return _ALIASES[cleaned]

    found = set()
    for token in cleaned.split():
        label = _label_for_token(token)
        if label is not None:
            found.add(label)
    if len(found) == 1:
        return found.pop()
    return IntentLabel.FALLBACK


class IntentRouter:
    """LLM-backed classifier over IntentLabel."""

    def __init__(
        self,
        llm,
        *,
        history_messages: int = 4,
        temperature: float = 0.3,
        timeout: Optional[float] = None,
    ) -> None:
        self._llm = llm
        self._history_messages = history_messages
        self._temperature = temperature
        self._timeout = timeout

    def build_messages(self, message: str, history: Sequence[ChatMessage]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": ROUTER_PROMPT}]
        if self._history_messages > 0:
            for entry in list(history)[-self._history_messages:]:
                if entry.role in ("user", "assistant"):
                    messages.append({
                        "role": entry.role,
                        "content": entry.content[:HISTORY_ENTRY_CHARS],
                    })
        messages.append({"role": "user", "content": message[:MAX_MESSAGE_CHARS]})
        return messages

    async def classify(self, message: str, history: Sequence[ChatMessage] = ()) -> IntentLabel:
        if not message or not message.strip():
            return IntentLabel.FALLBACK
        try:
            raw = await self._llm.complete(
                self.build_messages(message, history),
                task_type="route",
                temperature=self._temperature,
                max_tokens=10,
                timeout=self._timeout,
            )
        except Exception as e:
            logger.warning("Intent classification failed, using fallback: %s", e)
            return IntentLabel.FALLBACK
        label = parse_intent(raw)
        logger.info("Intent: %r -> %s", (raw or "")[:40], label.value)
        return label
