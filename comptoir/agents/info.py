# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
InfoBot — Business or household profile of the current tenant.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from comptoir.agents.base import BaseBot, BotRequest
from comptoir.storage.repositories import TenantRepository


class InfoBot(BaseBot):
    name = "info"
    apology = (
        "Je suis désolé, mais je rencontre des difficultés à accéder aux informations "
        "générales. Veuillez réessayer ultérieurement."
    )

    def __init__(self, tenants: TenantRepository) -> None:
        self._tenants = tenants

    async def respond(self, request: BotRequest) -> str:
        profile = request.tenant_data.get("profile") or await self._stored_profile()
        if not profile:
            return "Aucune information de profil n'a été trouvée."

        if profile.get("nom"):
            employees = profile.get("nombreEmployes")
            return "\n".join([
                "Voici les informations de base sur votre entreprise :",
                f"- Nom : {profile.get('nom')}",
                f"- Secteur : {profile.get('secteur') or 'Non défini'}",
                f"- Nombre d'employés : {employees if employees is not None else 'Non défini'}",
                f"- Objectifs : {profile.get('objectifs') or 'Non définis'}",
            ])

        if profile.get("nomFoyer"):
            lines = [
                "Voici les informations de base sur votre foyer :",
                f"- Nom du foyer : {profile['nomFoyer']}",
            ]
            members = [m.get("nom") for m in profile.get("membres") or [] if m.get("nom")]
            if members:
                lines.append(f"- Membres : {', '.join(members)}")
            return "\n".join(lines)

        return "Je n'ai pas trouvé d'informations spécifiques à afficher."

    async def _stored_profile(self) -> Optional[Dict[str, Any]]:
        tenant = await self._tenants.current()
        if tenant is None:
            return None
        profile = dict(tenant.profile or {})
        if not profile.get("nomFoyer"):
            profile.setdefault("nom", tenant.name)
        return profile
