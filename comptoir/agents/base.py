# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
BaseBot — Abstract base class for every domain handler.

A handler receives a BotRequest and returns plain French text. It parses
its own sub-intent from the message, reads tenant-scoped data through
the repositories, and never raises: ``handle`` converts any failure into
the handler's apology string.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from comptoir.memory.chat_store import ChatMessage

logger = logging.getLogger("comptoir.bots")


@dataclass
class BotRequest:
    """Uniform input bundle for every handler."""

    user_id: str
    message: str
    history: List[ChatMessage] = field(default_factory=list)
    tenant_data: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Lower-cased message for keyword matching."""
        return self.message.lower()


class BaseBot(ABC):
    """Subclasses set ``name``/``apology`` and implement respond()."""

    name: str = ""
    apology: str = (
        "Je suis désolé, mais je rencontre des difficultés à traiter votre demande. "
        "Veuillez réessayer ultérieurement."
    )

    @abstractmethod
    async def respond(self, request: BotRequest) -> str:
        ...

    async def handle(self, request: BotRequest) -> str:
        try:
            reply = await self.respond(request)
        except Exception:
            logger.exception("Handler %s failed", self.name)
            return self.apology
        return reply or self.apology
