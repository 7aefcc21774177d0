# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
"""Unit tests for IntentRouter and parse_intent."""

import pytest

from comptoir.agents.router import MAX_MESSAGE_CHARS, IntentLabel, IntentRouter, parse_intent
from comptoir.core.errors import UpstreamServiceError
from comptoir.memory.chat_store import ChatMessage


class TestParseIntent:
    @pytest.mark.parametrize("raw,expected", [
        ("accounting", IntentLabel.ACCOUNTING),
        ("business-data", IntentLabel.BUSINESS_DATA),
        ("marketing", IntentLabel.MARKETING),
        ("hr", IntentLabel.HR),
        ("info", IntentLabel.INFO),
        ("fallback", IntentLabel.FALLBACK),
        ("  Accounting.\n", IntentLabel.ACCOUNTING),
        ("Catégorie : comptabilité", IntentLabel.ACCOUNTING),
        ("RH", IntentLabel.HR),
        ("business data", IntentLabel.BUSINESS_DATA),
        ("`marketing`", IntentLabel.MARKETING),
    ])
    def test_known_labels(self, raw, expected):
        assert parse_intent(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "je ne sais pas", "météo", "42"])
    def test_unknown_is_fallback(self, raw):
        assert parse_intent(raw) == IntentLabel.FALLBACK

    def test_ambiguous_is_fallback(self):
        assert parse_intent("accounting ou marketing") == IntentLabel.FALLBACK

    def test_every_output_is_a_label(self):
        samples = ["accounting", "xyz", "hr hr", "info!!", "", "🙂", "fallback marketing"]
        for raw in samples:
            assert isinstance(parse_intent(raw), IntentLabel)


class TestIntentRouter:
    @pytest.mark.asyncio
    async def test_classify_uses_route_model(self, fake_llm):
        llm = fake_llm
        llm.replies["route"] = "accounting"
        router = IntentRouter(llm)
        assert await router.classify("Quel est mon chiffre d'affaires ?") == IntentLabel.ACCOUNTING
        call = llm.calls_for("route")[0]
        assert call["temperature"] == 0.3
        assert call["max_tokens"] == 10

    @pytest.mark.asyncio
    async def test_empty_message_skips_llm(self, fake_llm):
        llm = fake_llm
        router = IntentRouter(llm)
        assert await router.classify("   ") == IntentLabel.FALLBACK
        assert llm.call_log == []

    @pytest.mark.asyncio
    async def test_llm_failure_is_fallback(self, fake_llm):
        fake_llm.replies["route"] = UpstreamServiceError("LLM provider unavailable")
        assert await IntentRouter(fake_llm).classify("Bonjour") == IntentLabel.FALLBACK

    @pytest.mark.asyncio
    async def test_unexpected_error_is_fallback(self, fake_llm):
        fake_llm.replies["route"] = RuntimeError("boom")
        assert await IntentRouter(fake_llm).classify("Bonjour") == IntentLabel.FALLBACK

    @pytest.mark.asyncio
    async def test_free_text_answer_is_fallback(self, fake_llm):
        fake_llm.replies["route"] = "Je pense que cela concerne la météo."
        assert await IntentRouter(fake_llm).classify("Quel temps fait-il ?") == IntentLabel.FALLBACK

    @pytest.mark.asyncio
    async def test_very_long_message_is_truncated(self, fake_llm):
        fake_llm.replies["route"] = "hr"
        label = await IntentRouter(fake_llm).classify("x" * 200_000)
        assert isinstance(label, IntentLabel)
        assert label == IntentLabel.HR
        sent = fake_llm.calls_for("route")[0]["messages"][-1]
        assert sent["role"] == "user"
        assert len(sent["content"]) == MAX_MESSAGE_CHARS == 2000

    def test_history_is_condensed(self, fake_llm):
        router = IntentRouter(fake_llm, history_messages=4)
        history = [ChatMessage("user" if i % 2 == 0 else "assistant", f"m{i}" + "x" * 500) for i in range(10)]
        messages = router.build_messages("Bonjour", history)
        assert messages[0]["role"] == "system"
        assert messages[-1] == {"role": "user", "content": "Bonjour"}
        condensed = messages[1:-1]
        assert len(condensed) == 4
        assert condensed[0]["content"].startswith("m6")
        assert all(len(m["content"]) <= 200 for m in condensed)

    def test_no_history(self, fake_llm):
        router = IntentRouter(fake_llm, history_messages=0)
        messages = router.build_messages("Bonjour", [ChatMessage("user", "avant")])
        assert len(messages) == 2
