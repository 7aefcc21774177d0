# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
"""Unit tests for follow-up question suggestions."""

import uuid

import pytest

from comptoir.chat.suggestions import DEFAULT_SUGGESTIONS, SuggestionService, build_suggestions
from comptoir.core.tenant import tenant_scope
from comptoir.storage.models import ConversationSummary
from comptoir.storage.repositories import Repositories


def _summary(key_points=(), entities=()):
    return ConversationSummary(summary="s", key_points=list(key_points), entities=list(entities))


class TestBuildSuggestions:
    def test_no_summary_gives_defaults(self):
        assert build_suggestions(None) == DEFAULT_SUGGESTIONS

    def test_entity_templates_come_first(self):
        suggestions = build_suggestions(_summary(
            key_points=["Les ventes progressent"],
            entities=[{"type": "produit", "value": "Café"}, {"type": "client", "value": "Dupont"}],
        ))
        assert suggestions == [
            "Quelles sont les ventes pour Café ?",
            "Montrez-moi l'historique du client Dupont",
            "Quel est mon chiffre d'affaires ce mois-ci ?",
        ]

    def test_employee_entity(self):
        suggestions = build_suggestions(_summary(entities=[{"type": "employé", "value": "Alice"}]))
        assert suggestions[0] == "Quel est le planning de Alice ?"

    def test_key_point_keywords(self):
        suggestions = build_suggestions(_summary(key_points=["Problème de stock", "Nouvel employé"]))
        assert suggestions[:2] == [
            "Quels produits sont en rupture de stock ?",
            "Montrez-moi les performances de l'équipe",
        ]

    def test_padded_with_defaults_and_truncated(self):
        suggestions = build_suggestions(_summary(entities=[{"type": "produit", "value": "Thé"}]))
        assert len(suggestions) == 3
        assert suggestions[1:] == DEFAULT_SUGGESTIONS[:2]

        many = build_suggestions(_summary(entities=[{"type": "produit", "value": f"P{i}"} for i in range(6)]))
        assert len(many) == 3

    def test_unknown_entity_types_ignored(self):
        suggestions = build_suggestions(_summary(entities=[{"type": "lieu", "value": "Paris"}, "bruit"]))
        assert suggestions == DEFAULT_SUGGESTIONS

    def test_no_duplicates(self):
        suggestions = build_suggestions(_summary(key_points=["vente 1", "vente 2"]))
        assert len(set(suggestions)) == len(suggestions) == 3


class TestSuggestionService:
    @pytest.mark.asyncio
    async def test_uses_stored_summary(self, database):
        repos = Repositories.build(database.session_factory)
        with tenant_scope("shop_a"):
            conv = await repos.conversations.create("user_001", "shop_a")
            await repos.summaries.upsert_summary(
                "shop_a", conv.id, user_id="user_001", summary="s",
                key_points=["stock"], entities=[], last_message_timestamp=None,
            )
            suggestions = await SuggestionService(repos.summaries).suggest(conv.id)
        assert suggestions[0] == "Quels produits sont en rupture de stock ?"

    @pytest.mark.asyncio
    async def test_without_summary_gives_defaults(self, database):
        repos = Repositories.build(database.session_factory)
        with tenant_scope("shop_a"):
            assert await SuggestionService(repos.summaries).suggest(uuid.uuid4()) == DEFAULT_SUGGESTIONS

    @pytest.mark.asyncio
    async def test_failure_gives_defaults(self, database):
        repos = Repositories.build(database.session_factory)
        # No ambient tenant: the read is refused
        assert await SuggestionService(repos.summaries).suggest(uuid.uuid4()) == DEFAULT_SUGGESTIONS
