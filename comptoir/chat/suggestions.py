# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""Follow-up question suggestions derived from a conversation summary."""

from __future__ import annotations

import logging
from typing import List, Optional

from comptoir.memory.conversation_store import parse_conversation_id
from comptoir.storage.models import ConversationSummary
from comptoir.storage.repositories import SummaryRepository

logger = logging.getLogger("comptoir.suggestions")

MAX_SUGGESTIONS = 3

DEFAULT_SUGGESTIONS = [
    "Quel est mon chiffre d'affaires aujourd'hui ?",
    "Combien de clients ai-je servis cette semaine ?",
    "Quels sont mes produits les plus vendus ?",
]

_ENTITY_TEMPLATES = {
    "produit": "Quelles sont les ventes pour {value} ?",
    "product": "Quelles sont les ventes pour {value} ?",
    "client": "Montrez-moi l'historique du client {value}",
    "customer": "Montrez-moi l'historique du client {value}",
    "employé": "Quel est le planning de {value} ?",
    "employe": "Quel est le planning de {value} ?",
    "employee": "Quel est le planning de {value} ?",
}

_KEY_POINT_TEMPLATES = [
    ("vente", "Quel est mon chiffre d'affaires ce mois-ci ?"),
    ("stock", "Quels produits sont en rupture de stock ?"),
    ("employé", "Montrez-moi les performances de l'équipe"),
]


def build_suggestions(summary: Optional[ConversationSummary]) -> List[str]:
    """Entity questions first, then key-point questions, padded with defaults."""
    if summary is None:
        return list(DEFAULT_SUGGESTIONS)

    suggestions: List[str] = []

    def _add(text: str) -> None:
        if text not in suggestions:
            suggestions.append(text)

    for entity in summary.entities or []:
        if not isinstance(entity, dict):
            continue
        template = _ENTITY_TEMPLATES.get(str(entity.get("type", "")).lower())
        value = entity.get("value")
        if template and value:
            _add(template.format(value=value))

    for point in summary.key_points or []:
        lowered = str(point).lower()
        for keyword, question in _KEY_POINT_TEMPLATES:
            if keyword in lowered:
                _add(question)

    for default in DEFAULT_SUGGESTIONS:
        if len(suggestions) >= MAX_SUGGESTIONS:
            break
        _add(default)

    return suggestions[:MAX_SUGGESTIONS]


class SuggestionService:
    def __init__(self, summaries: SummaryRepository) -> None:
        self._summaries = summaries

    async def suggest(self, conversation_id) -> List[str]:
        try:
            summary = await self._summaries.for_conversation(parse_conversation_id(conversation_id))
            return build_suggestions(summary)
        except Exception as e:
            logger.warning("Suggestions fell back to defaults for %s: %s", conversation_id, e)
            return list(DEFAULT_SUGGESTIONS)
