# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
BotDispatch — Exhaustive IntentLabel → handler table.

The table is checked at construction: a label without a handler is a
startup error, not a silent fallback at runtime. Unknown labels (raw
strings from older payloads) resolve to FALLBACK.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Union

from comptoir.agents.accounting import AccountingBot
from comptoir.agents.base import BaseBot, BotRequest
from comptoir.agents.business_data import BusinessDataBot
from comptoir.agents.fallback import FALLBACK_REPLY, FallbackBot
from comptoir.agents.hr import HRBot
from comptoir.agents.info import InfoBot
from comptoir.agents.marketing import MarketingBot
from comptoir.agents.router import IntentLabel
from comptoir.storage.repositories import Repositories

logger = logging.getLogger("comptoir.dispatch")


class BotDispatch:
    def __init__(self, bots: Mapping[IntentLabel, BaseBot]) -> None:
        missing = [label.value for label in IntentLabel if label not in bots]
        if missing:
            raise ValueError(f"No handler registered for: {', '.join(missing)}")
        self._bots: Dict[IntentLabel, BaseBot] = dict(bots)

    @classmethod
    def default(cls, repos: Repositories, llm) -> "BotDispatch":
        return cls({
            IntentLabel.ACCOUNTING: AccountingBot(repos.sales, repos.accounting),
            IntentLabel.BUSINESS_DATA: BusinessDataBot(repos.products, repos.sales),
            IntentLabel.MARKETING: MarketingBot(llm),
            IntentLabel.HR: HRBot(repos.employees),
            IntentLabel.INFO: InfoBot(repos.tenants),
            IntentLabel.FALLBACK: FallbackBot(),
        })

    def resolve(self, label: Union[IntentLabel, str]) -> BaseBot:
        try:
            return self._bots[IntentLabel(label)]
        except ValueError:
            logger.warning("Unknown intent label %r, using fallback", label)
            return self._bots[IntentLabel.FALLBACK]

    async def dispatch(self, label: Union[IntentLabel, str], request: BotRequest) -> str:
        bot = self.resolve(label)
        reply = await bot.handle(request)
        return reply or FALLBACK_REPLY
