# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
BusinessDataBot — Products, stock and sales figures.
"""

from __future__ import annotations

import re
from typing import Dict

from comptoir.agents.base import BaseBot, BotRequest
from comptoir.agents.periods import Period, format_eur, resolve_period
from comptoir.storage.repositories import ProductRepository, SaleRepository

_CATEGORY = re.compile(r"catégorie\s+(\w+)", re.IGNORECASE)
TOP_PRODUCTS = 5


class BusinessDataBot(BaseBot):
    name = "business-data"
    apology = (
        "Je suis désolé, mais je rencontre des difficultés à accéder aux données "
        "commerciales. Veuillez réessayer ultérieurement."
    )

    def __init__(self, products: ProductRepository, sales: SaleRepository) -> None:
        self._products = products
        self._sales = sales

    async def respond(self, request: BotRequest) -> str:
        text = request.text
        if "produit" in text or "stock" in text:
            return await self._products_info(text)
        if "vente" in text or "client" in text or "commande" in text:
            return await self._sales_info(text)
        return (
            "Je peux vous aider avec vos données commerciales. Vous pouvez me demander "
            "des informations sur vos produits, vos ventes, vos clients, etc."
        )

    async def _products_info(self, text: str) -> str:
        if "rupture" in text or "épuisé" in text:
            missing = await self._products.out_of_stock()
            if not missing:
                return "Bonne nouvelle ! Aucun produit n'est actuellement en rupture de stock."
            lines = [f"Vous avez {len(missing)} produit(s) en rupture de stock :", ""]
            lines += [f"- {p.name} ({p.category or 'Sans catégorie'})" for p in missing]
            return "\n".join(lines)

        match = _CATEGORY.search(text)
        category = match.group(1) if match else None
        products = await self._products.active(category)
        if not products:
            if category:
                return f'Aucun produit trouvé dans la catégorie "{category}".'
            return "Aucun produit n'est actuellement enregistré dans votre inventaire."

        header = (
            f'Voici les produits de la catégorie "{category}" :'
            if category else "Voici la liste de vos produits :"
        )
        lines = [header, ""]
        for p in products:
            line = f"- {p.name} : {format_eur(p.price or 0)} | Stock : {p.stock} unité(s)"
            if p.category:
                line += f" | Catégorie : {p.category}"
            lines.append(line)
        return "\n".join(lines)

    async def _sales_info(self, text: str) -> str:
        period = resolve_period(text)
        sales = await self._sales.between(period.start, period.end)

        if "meilleure" in text or "top" in text or "plus vendu" in text:
            return self._top_products(sales, period)

        if not sales:
            return "Aucune vente n'a été enregistrée pour cette période."
        total = sum(s.total_amount or 0 for s in sales)
        return (
            f"Vous avez réalisé {len(sales)} vente(s) {period.label} pour un total de "
            f"{format_eur(total)}. Le panier moyen est de {format_eur(total / len(sales))}."
        )

    def _top_products(self, sales, period: Period) -> str:
        totals: Dict[str, Dict] = {}
        for sale in sales:
            for item in sale.items or []:
                key = str(item.get("product_id") or item.get("product_name"))
                entry = totals.setdefault(
                    key, {"name": item.get("product_name", "?"), "quantity": 0, "revenue": 0.0},
                )
                entry["quantity"] += item.get("quantity", 0)
                entry["revenue"] += item.get("total_price", 0)

        ranked = sorted(totals.values(), key=lambda e: e["quantity"], reverse=True)[:TOP_PRODUCTS]
        if not ranked:
            return "Aucune vente n'a été enregistrée pour cette période."

        lines = [f"Voici vos produits les plus vendus {period.label} :", ""]
        for index, entry in enumerate(ranked, 1):
            lines.append(
                f"{index}. {entry['name']} : {entry['quantity']} unité(s) vendues "
                f"pour {format_eur(entry['revenue'])}"
            )
        return "\n".join(lines)
