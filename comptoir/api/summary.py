# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Summary API — Conversation summaries of the caller's tenant.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from comptoir.api.deps import get_current_tenant
from comptoir.core.context import get_platform_context
from comptoir.core.errors import ValidationError
from comptoir.core.tenant import TenantContext
from comptoir.storage.models import ConversationSummary

router = APIRouter(prefix="/summary", tags=["summary"])


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def summary_to_dict(row: ConversationSummary) -> dict:
    return {
        "id": str(row.id),
        "conversation_id": str(row.conversation_id),
        "user_id": row.user_id,
        "summary": row.summary,
        "key_points": row.key_points or [],
        "entities": row.entities or [],
        "last_message_timestamp": _iso(row.last_message_timestamp),
        "updated_at": _iso(row.updated_at),
    }


@router.get("")
async def list_summaries(
    start_date: Optional[datetime] = Query(None, description="Period start (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Period end (ISO 8601)"),
    tenant: TenantContext = Depends(get_current_tenant),
):
    """Tenant summaries in the period, most recent first."""
    start_date, end_date = _as_utc(start_date), _as_utc(end_date)
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    ctx = get_platform_context()
    rows = await ctx.summaries.list_for_period(start_date, end_date)
    return {
        "summaries": [summary_to_dict(r) for r in rows],
        "count": len(rows),
    }
