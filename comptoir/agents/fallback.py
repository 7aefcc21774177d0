# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""FallbackBot — Static reply for messages no domain handler owns."""

from __future__ import annotations

from comptoir.agents.base import BaseBot, BotRequest

FALLBACK_REPLY = (
    "Désolé, je n'ai pas bien compris votre demande. Pourriez-vous reformuler ? "
    "Je peux vous aider avec des questions sur vos produits, ventes, employés, "
    "comptabilité ou marketing."
)


class FallbackBot(BaseBot):
    name = "fallback"
    apology = "Je suis désolé, une erreur s'est produite. Pourriez-vous reformuler votre demande ?"

    async def respond(self, request: BotRequest) -> str:
        return FALLBACK_REPLY
