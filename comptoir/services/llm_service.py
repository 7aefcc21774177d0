# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
LLM Service — DashScope text completion with task-type model routing.

Callers treat the provider as unreliable: every failure surfaces as
UpstreamServiceError and each caller applies its own fallback.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import dashscope

from comptoir.core.config import settings
from comptoir.core.errors import UpstreamServiceError

logger = logging.getLogger("comptoir.llm")

PromptOrMessages = Union[str, List[Dict[str, str]]]


class LLMService:
    """
    DashScope wrapper.

    task_type selects the model: "route" for intent classification,
    "summarize" for conversation digests, anything else for handlers.
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = "qwen-plus",
        model_map: Optional[Dict[str, str]] = None,
        timeout: float = 30.0,
        max_retries: int = 2,
        max_tokens: int = 800,
    ) -> None:
        self.api_key = api_key
        self.default_model = default_model
        self.model_map = model_map or {}
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls) -> "LLMService":
        return cls(
            api_key=settings.DASHSCOPE_API_KEY,
            default_model=settings.DASHSCOPE_MODEL,
            model_map={
                "route": settings.DASHSCOPE_ROUTER_MODEL,
                "summarize": settings.DASHSCOPE_SUMMARY_MODEL,
            },
            timeout=settings.LLM_TIMEOUT,
            max_retries=settings.LLM_MAX_RETRIES,
            max_tokens=settings.LLM_MAX_TOKENS,
        )

    async def complete(
        self,
        prompt_or_messages: PromptOrMessages,
        *,
        task_type: str = "chat",
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> str:
        """
        Return the completion text.

        Raises:
            UpstreamServiceError: provider error or timeout on every attempt.
        """
        if isinstance(prompt_or_messages, str):
            messages = [{"role": "user", "content": prompt_or_messages}]
        else:
            messages = list(prompt_or_messages)
        model = self.model_map.get(task_type, self.default_model)
        timeout = timeout or self.timeout

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                return await asyncio.wait_for(
                    self._async_call(
                        model,
                        messages,
                        temperature=temperature,
                        max_tokens=max_tokens or self.max_tokens,
                        **kwargs,
                    ),
                    timeout=timeout,
                )
            except Exception as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    wait = 2 ** attempt
                    logger.warning(
                        "LLM call failed (attempt %d/%d, model=%s): %r. Retrying in %ds...",
                        attempt + 1, self.max_retries, model, e, wait,
                    )
                    await asyncio.sleep(wait)

        logger.error("LLM call failed after %d attempts (task=%s): %r", self.max_retries, task_type, last_error)
        raise UpstreamServiceError(
            "LLM provider unavailable",
            details={"model": model, "task_type": task_type},
        ) from last_error

    async def _async_call(
        self,
        model: str,
        messages: List[Dict[str, str]],
        **kwargs: Any,
    ) -> str:
        """
        Async wrapper around DashScope's synchronous Generation.call().

        Uses asyncio.to_thread to avoid blocking the event loop.
        """
        def _sync_call() -> str:
            response = dashscope.Generation.call(
                model=model,
                messages=messages,
                api_key=self.api_key,
                result_format="message",
                **kwargs,
            )
            if response.status_code != 200:
                raise RuntimeError(
                    f"DashScope error: {response.code} - {response.message}"
                )
            return response.output.choices[0].message.content or ""

        return await asyncio.to_thread(_sync_call)
