# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
HRBot — Employee listing and employee details.
"""

from __future__ import annotations

import re

from comptoir.agents.base import BaseBot, BotRequest
from comptoir.storage.repositories import EmployeeRepository

_LISTING = ("liste des employés", "combien d'employés", "qui sont mes employés")
_EMPLOYEE_INFO = re.compile(r"informations sur ([\w\s\-]+)", re.IGNORECASE)


class HRBot(BaseBot):
    name = "hr"
    apology = (
        "Je suis désolé, mais je rencontre des difficultés à accéder aux informations RH. "
        "Veuillez réessayer ultérieurement."
    )

    def __init__(self, employees: EmployeeRepository) -> None:
        self._employees = employees

    async def respond(self, request: BotRequest) -> str:
        text = request.text.replace("’", "'")

        if any(phrase in text for phrase in _LISTING):
            return await self._listing(active_only="tous" not in text)

        match = _EMPLOYEE_INFO.search(text)
        if match:
            return await self._details(match.group(1).strip())

        if "planning" in text or "horaire" in text:
            return "La consultation des plannings n'est pas encore disponible via le chat."
        if "performance" in text or "évaluation" in text:
            return "La consultation des performances n'est pas encore disponible via le chat."

        return (
            "Je peux vous aider avec les ressources humaines. Vous pouvez me demander la "
            "liste de vos employés, des informations sur un employé spécifique, etc."
        )

    async def _listing(self, active_only: bool) -> str:
        employees = await self._employees.listing(active_only=active_only)
        if not employees:
            if active_only:
                return "Vous n'avez aucun employé actif actuellement."
            return "Aucun employé enregistré."

        qualifier = " actif(s)" if active_only else ""
        lines = [f"Vous avez {len(employees)} employé(s){qualifier} :", ""]
        for e in employees:
            line = f"- {e.first_name} {e.last_name} ({e.position or 'poste non défini'})"
            if not e.is_active:
                line += " (Inactif)"
            lines.append(line)
        return "\n".join(lines)

    async def _details(self, name: str) -> str:
        employee = await self._employees.by_name(name)
        if employee is None:
            return f"Je n'ai pas trouvé d'employé nommé {name}."
        return "\n".join([
            f"Voici les informations pour {employee.first_name} {employee.last_name} :",
            f"- Poste : {employee.position or 'Non défini'}",
            f"- Email : {employee.email or 'Non fourni'}",
            f"- Téléphone : {employee.phone or 'Non fourni'}",
            f"- Statut : {'Actif' if employee.is_active else 'Inactif'}",
        ])
