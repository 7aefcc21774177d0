# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
"""Unit tests for LLMService (DashScope calls are patched)."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from comptoir.core.errors import UpstreamServiceError
from comptoir.services.llm_service import LLMService


def _response(content="ok", status_code=200):
    message = SimpleNamespace(content=content)
    output = SimpleNamespace(choices=[SimpleNamespace(message=message)])
    return SimpleNamespace(status_code=status_code, output=output, code="Throttling", message="rate limited")


@pytest.fixture
def llm():
    return LLMService(
        api_key="sk-test",
        default_model="qwen-plus",
        model_map={"route": "qwen-turbo"},
        max_retries=2,
    )


@pytest.fixture(autouse=True)
def no_backoff_sleep():
    async def _sleep(_):
        return None

    with patch("comptoir.services.llm_service.asyncio.sleep", _sleep):
        yield


class TestComplete:
    @pytest.mark.asyncio
    async def test_prompt_becomes_user_message(self, llm):
        with patch("dashscope.Generation.call", return_value=_response("Bonjour")) as call:
            assert await llm.complete("Salut") == "Bonjour"
        kwargs = call.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "Salut"}]
        assert kwargs["model"] == "qwen-plus"
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["max_tokens"] == 800

    @pytest.mark.asyncio
    async def test_task_type_selects_model(self, llm):
        with patch("dashscope.Generation.call", return_value=_response("accounting")) as call:
            await llm.complete("Mon CA ?", task_type="route", temperature=0.3, max_tokens=10)
        kwargs = call.call_args.kwargs
        assert kwargs["model"] == "qwen-turbo"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 10

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, llm):
        with patch("dashscope.Generation.call", side_effect=[_response(status_code=429), _response("ok")]) as call:
            assert await llm.complete("Salut") == "ok"
        assert call.call_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_upstream_error(self, llm):
        with patch("dashscope.Generation.call", side_effect=ConnectionError("down")) as call:
            with pytest.raises(UpstreamServiceError) as exc_info:
                await llm.complete("Salut", task_type="summarize")
        assert call.call_count == 2
        assert exc_info.value.details == {"model": "qwen-plus", "task_type": "summarize"}

    @pytest.mark.asyncio
    async def test_empty_content_is_empty_string(self, llm):
        with patch("dashscope.Generation.call", return_value=_response(None)):
            assert await llm.complete("Salut") == ""


def test_from_settings_maps_task_types():
    llm = LLMService.from_settings()
    assert set(llm.model_map) == {"route", "summarize"}
    assert llm.max_retries >= 1
