# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
MarketingBot — LLM-written marketing advice with static fallbacks.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from comptoir.agents.base import BaseBot, BotRequest

logger = logging.getLogger("comptoir.bots.marketing")

_ADVICE_TEMPERATURE = 0.7
_PROMPT = (
    "En tant que {role}, donne des conseils pratiques et concrets sur {topic} en réponse "
    "à cette question : \"{message}\".\n"
    "Limite ta réponse à 3-4 paragraphes maximum avec des conseils actionnables. "
    "Sois spécifique et évite les généralités."
)

# (keywords, role, topic, static advice)
_TOPICS: Tuple[Tuple[Tuple[str, ...], str, str, str], ...] = (
    (
        ("réseau social", "réseaux sociaux", "facebook", "instagram", "twitter", "linkedin", "tiktok"),
        "expert en marketing digital",
        "les réseaux sociaux",
        "Pour améliorer votre présence sur les réseaux sociaux, publiez régulièrement du "
        "contenu utile à votre audience, répondez à vos abonnés et analysez les performances "
        "de vos publications pour ajuster votre stratégie.",
    ),
    (
        ("publicité", "pub", "annonce", "campagne"),
        "expert en publicité",
        "les campagnes publicitaires",
        "Pour optimiser vos campagnes publicitaires, définissez clairement votre audience "
        "cible, testez plusieurs versions de vos annonces et suivez vos indicateurs de "
        "performance pour réallouer votre budget.",
    ),
    (
        ("stratégie", "plan marketing", "promotion", "marketing"),
        "consultant en stratégie marketing",
        "la stratégie marketing",
        "Pour bâtir une stratégie marketing efficace, analysez votre marché et vos "
        "concurrents, clarifiez votre proposition de valeur, segmentez votre audience et "
        "mettez en place un mix marketing cohérent (produit, prix, distribution, communication).",
    ),
)


class MarketingBot(BaseBot):
    name = "marketing"
    apology = (
        "Je suis désolé, mais je rencontre des difficultés à traiter votre demande "
        "marketing. Veuillez réessayer ultérieurement."
    )

    def __init__(self, llm) -> None:
        self._llm = llm

    async def respond(self, request: BotRequest) -> str:
        text = request.text
        for keywords, role, topic, static_advice in _TOPICS:
            if any(k in text for k in keywords):
                advice = await self._advice(request.message, role, topic)
                return advice or static_advice
        return (
            "Je peux vous aider avec vos questions marketing. N'hésitez pas à me demander "
            "des conseils sur les réseaux sociaux, la publicité ou votre stratégie marketing."
        )

    async def _advice(self, message: str, role: str, topic: str) -> Optional[str]:
        prompt = _PROMPT.format(role=role, topic=topic, message=message)
        try:
            reply = await self._llm.complete(prompt, temperature=_ADVICE_TEMPERATURE)
        except Exception as e:
            logger.warning("Marketing advice generation failed (%s): %s", topic, e)
            return None
        return reply.strip() or None
