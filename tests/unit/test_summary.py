# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
"""Unit tests for SummaryEngine and summary output parsing."""

import json
import uuid
from datetime import timezone

import pytest

from comptoir.chat.summary import PLACEHOLDER_SUMMARY, SummaryEngine, parse_digest
from comptoir.core.errors import NotFoundError, UpstreamServiceError
from comptoir.core.tenant import tenant_scope
from comptoir.memory.chat_store import ChatMessage
from comptoir.storage.repositories import Repositories

TENANT = "shop_a"
USER = "user_001"

GOOD_OUTPUT = json.dumps({
    "summary": "Le client a demandé son chiffre d'affaires.",
    "keyPoints": ["Ventes en hausse", "Stock de café bas"],
    "entities": [{"type": "produit", "value": "Café"}, {"type": "client", "value": "Dupont"}],
}, ensure_ascii=False)


class TestParseDigest:
    def test_strict_json(self):
        digest = parse_digest(GOOD_OUTPUT)
        assert digest.summary == "Le client a demandé son chiffre d'affaires."
        assert digest.key_points == ["Ventes en hausse", "Stock de café bas"]
        assert digest.entities[0] == {"type": "produit", "value": "Café"}
        assert not digest.degraded

    def test_code_fence_is_stripped(self):
        digest = parse_digest(f"```json\n{GOOD_OUTPUT}\n```")
        assert digest.summary.startswith("Le client")

    def test_regex_extraction_from_noisy_output(self):
        raw = (
            'Voici le résumé : {"summary": "Questions sur le \\"stock\\"", '
            '"keyPoints": ["Stock bas"], "entities": [{"type": "produit", "value": "Thé"}] '
            "(fin)"
        )
        digest = parse_digest(raw)
        assert digest.summary == 'Questions sur le "stock"'
        assert digest.key_points == ["Stock bas"]
        assert digest.entities == [{"type": "produit", "value": "Thé"}]

    @pytest.mark.parametrize("raw", [None, "", "pas de JSON du tout", "[1, 2, 3]"])
    def test_unparseable_is_degraded(self, raw):
        digest = parse_digest(raw)
        assert digest.summary == PLACEHOLDER_SUMMARY
        assert digest.key_points == []
        assert digest.entities == []
        assert digest.degraded

    def test_malformed_fields_are_dropped(self):
        raw = json.dumps({"summary": "ok", "keyPoints": "pas une liste", "entities": [{"type": "produit"}, "x"]})
        digest = parse_digest(raw)
        assert digest.summary == "ok"
        assert digest.key_points == []
        assert digest.entities == []


@pytest.fixture
def repos(database):
    return Repositories.build(database.session_factory)


@pytest.fixture
def engine(fake_llm, repos):
    fake_llm.replies["summarize"] = GOOD_OUTPUT
    return SummaryEngine(fake_llm, repos.summaries, repos.conversations)


async def _conversation(repos, tenant_id=TENANT, messages=()):
    with tenant_scope(tenant_id):
        conv = await repos.conversations.create(USER, tenant_id)
        if messages:
            await repos.conversations.append_messages(conv.id, [m.to_record(tenant_id) for m in messages])
    return conv


class TestSummaryEngine:
    @pytest.mark.asyncio
    async def test_save_creates_summary(self, engine, repos, fake_llm):
        conv = await _conversation(repos)
        messages = [ChatMessage("user", "Mon CA ?", ts=1700000000.0), ChatMessage("assistant", "150 €", ts=1700000005.0)]
        row = await engine.save(TENANT, conv.id, messages)

        assert row.summary.startswith("Le client")
        assert row.tenant_id == TENANT
        assert row.user_id == USER
        ts = row.last_message_timestamp
        assert ts.replace(tzinfo=ts.tzinfo or timezone.utc).timestamp() == pytest.approx(1700000005.0)
        call = fake_llm.calls_for("summarize")[0]
        assert call["temperature"] == 0.2
        assert "user: Mon CA ?" in call["messages"]

    @pytest.mark.asyncio
    async def test_resave_updates_single_row(self, engine, repos, fake_llm):
        conv = await _conversation(repos)
        await engine.save(TENANT, conv.id, [ChatMessage("user", "a")])
        fake_llm.replies["summarize"] = json.dumps({"summary": "Deuxième version", "keyPoints": [], "entities": []})
        await engine.save(TENANT, conv.id, [ChatMessage("user", "a"), ChatMessage("user", "b")])

        with tenant_scope(TENANT):
            assert await repos.summaries.count() == 1
            latest = await engine.latest(conv.id)
        assert latest.summary == "Deuxième version"
        assert latest.key_points == []

    @pytest.mark.asyncio
    async def test_loads_messages_from_storage(self, engine, repos, fake_llm):
        conv = await _conversation(repos, messages=[ChatMessage("user", "stocké")])
        row = await engine.save(TENANT, conv.id)
        assert row is not None
        assert "user: stocké" in fake_llm.calls_for("summarize")[0]["messages"]

    @pytest.mark.asyncio
    async def test_accepts_message_dicts(self, engine, repos):
        conv = await _conversation(repos)
        row = await engine.save(TENANT, conv.id, [{"role": "user", "content": "dict", "ts": 1700000000.0}])
        assert row is not None

    @pytest.mark.asyncio
    async def test_empty_conversation_is_skipped(self, engine, repos, fake_llm):
        conv = await _conversation(repos)
        assert await engine.save(TENANT, conv.id) is None
        assert fake_llm.calls_for("summarize") == []

    @pytest.mark.asyncio
    async def test_unknown_conversation_raises(self, engine):
        with pytest.raises(NotFoundError):
            await engine.save(TENANT, uuid.uuid4(), [ChatMessage("user", "a")])

    @pytest.mark.asyncio
    async def test_foreign_conversation_raises(self, engine, repos):
        conv = await _conversation(repos, tenant_id="shop_b")
        with pytest.raises(NotFoundError):
            await engine.save(TENANT, conv.id, [ChatMessage("user", "a")])

    @pytest.mark.asyncio
    async def test_llm_failure_propagates(self, engine, repos, fake_llm):
        conv = await _conversation(repos)
        fake_llm.replies["summarize"] = UpstreamServiceError("LLM provider unavailable")
        with pytest.raises(UpstreamServiceError):
            await engine.save(TENANT, conv.id, [ChatMessage("user", "a")])

    @pytest.mark.asyncio
    async def test_degraded_output_is_still_saved(self, engine, repos, fake_llm):
        conv = await _conversation(repos)
        fake_llm.replies["summarize"] = "désolé, je ne peux pas"
        row = await engine.save(TENANT, conv.id, [ChatMessage("user", "a")])
        assert row.summary == PLACEHOLDER_SUMMARY

    @pytest.mark.asyncio
    async def test_list_for_period_is_tenant_scoped(self, engine, repos):
        mine = await _conversation(repos)
        theirs = await _conversation(repos, tenant_id="shop_b")
        await engine.save(TENANT, mine.id, [ChatMessage("user", "a")])
        await engine.save("shop_b", theirs.id, [ChatMessage("user", "b")])

        with tenant_scope(TENANT):
            rows = await engine.list_for_period()
        assert [r.conversation_id for r in rows] == [mine.id]
