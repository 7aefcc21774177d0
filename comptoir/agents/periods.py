# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Period & amount helpers shared by the accounting and business handlers.

    resolve_period("ca aujourd'hui") -> Period(label="aujourd'hui", ...)
    format_eur(1234.5) -> "1 234,50 €"
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


@dataclass(frozen=True)
class Period:
    label: str
    start: datetime
    end: datetime


def _day_bounds(day: datetime) -> tuple:
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def resolve_period(text: str, now: Optional[datetime] = None) -> Period:
    """Today, this week (Monday-Sunday) or this month. Defaults to this month."""
    now = now or datetime.now(timezone.utc)
    text = text.lower()

    if "aujourd'hui" in text or "aujourd’hui" in text:
        start, end = _day_bounds(now)
        return Period("aujourd'hui", start, end)

    if "cette semaine" in text:
        monday, _ = _day_bounds(now - timedelta(days=now.weekday()))
        end = monday + timedelta(days=7) - timedelta(microseconds=1)
        return Period("cette semaine", monday, end)

    first, _ = _day_bounds(now.replace(day=1))
    last_day = calendar.monthrange(now.year, now.month)[1]
    _, end = _day_bounds(now.replace(day=last_day))
    return Period("ce mois-ci", first, end)


def format_eur(amount: float) -> str:
    """French currency formatting with two decimals."""
    formatted = f"{amount:,.2f}".replace(",", " ").replace(".", ",")
    return f"{formatted} €"


def format_percent(value: float) -> str:
    return f"{value:.1f}".replace(".", ",") + " %"
