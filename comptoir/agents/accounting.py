# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
AccountingBot — Revenue, expenses and profit for a period.
"""

from __future__ import annotations

import re
from collections import defaultdict

from comptoir.agents.base import BaseBot, BotRequest
from comptoir.agents.periods import Period, format_eur, format_percent, resolve_period
from comptoir.storage.repositories import AccountingRepository, SaleRepository

_REVENUE = re.compile(r"chiffre d['’]affaires|\bca\b|revenu")
_EXPENSES = re.compile(r"dépense|depense|coût|cout|frais")
_PROFIT = re.compile(r"bénéfice|benefice|profit|marge")


class AccountingBot(BaseBot):
    name = "accounting"
    apology = (
        "Je suis désolé, mais je rencontre des difficultés à accéder aux informations "
        "comptables. Veuillez réessayer ultérieurement."
    )

    def __init__(self, sales: SaleRepository, accounting: AccountingRepository) -> None:
        self._sales = sales
        self._accounting = accounting

    async def respond(self, request: BotRequest) -> str:
        text = request.text
        period = resolve_period(text)
        if _REVENUE.search(text):
            return await self._revenue(period)
        if _EXPENSES.search(text):
            return await self._expenses(period)
        if _PROFIT.search(text):
            return await self._profit(period)
        return (
            "Je peux vous aider avec votre comptabilité. Vous pouvez me demander des "
            "informations sur votre chiffre d'affaires, vos dépenses, vos bénéfices, etc."
        )

    async def _revenue(self, period: Period) -> str:
        sales = await self._sales.between(period.start, period.end)
        total = sum(s.total_amount or 0 for s in sales)
        return (
            f"Votre chiffre d'affaires {period.label} est de {format_eur(total)}. "
            f"Cela représente un total de {len(sales)} vente(s)."
        )

    async def _expenses(self, period: Period) -> str:
        entries = await self._accounting.expenses_between(period.start, period.end)
        total = sum(e.amount or 0 for e in entries)
        by_category = defaultdict(float)
        for entry in entries:
            by_category[entry.category or "Autre"] += entry.amount or 0

        lines = [f"Vos dépenses totales {period.label} s'élèvent à {format_eur(total)}."]
        if by_category and total:
            lines.append("")
            lines.append("Répartition par catégorie :")
            for category, amount in sorted(by_category.items(), key=lambda kv: -kv[1]):
                lines.append(f"- {category} : {format_eur(amount)} ({format_percent(amount / total * 100)})")
        return "\n".join(lines)

    async def _profit(self, period: Period) -> str:
        sales = await self._sales.between(period.start, period.end)
        expenses = await self._accounting.expenses_between(period.start, period.end)
        revenue = sum(s.total_amount or 0 for s in sales)
        spent = sum(e.amount or 0 for e in expenses)
        profit = revenue - spent
        margin = profit / revenue * 100 if revenue > 0 else 0.0
        return (
            f"Votre bénéfice {period.label} est de {format_eur(profit)}, "
            f"soit une marge de {format_percent(margin)}.\n\n"
            f"Ce résultat est basé sur un chiffre d'affaires de {format_eur(revenue)} "
            f"et des dépenses de {format_eur(spent)}."
        )
