# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Repository Layer — Typed access to every Comptoir table.

Every tenant-owned table goes through TenantScopedRepository
(comptoir.storage.guard); callers never filter by tenant themselves.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from comptoir.core.errors import NotFoundError
from comptoir.core.tenant import require_tenant_id
from comptoir.storage.guard import TenantScopedRepository
from comptoir.storage.models import (
    AccountingEntry,
    Conversation,
    ConversationMessage,
    ConversationSummary,
    Employee,
    Product,
    Sale,
    Tenant,
    _utcnow,
)


# ── Conversations ───────────────────────────────────────────

class MessageRepository(TenantScopedRepository[ConversationMessage]):
    model = ConversationMessage

    async def list_for(
        self,
        conversation_id: uuid.UUID,
        session: Optional[AsyncSession] = None,
    ) -> List[ConversationMessage]:
        """Messages in append order."""
        return await self.find(
            ConversationMessage.conversation_id == conversation_id,
            order_by=[ConversationMessage.seq],
            session=session,
        )

    async def existing_ids(
        self,
        ids: Sequence[uuid.UUID],
        session: Optional[AsyncSession] = None,
    ) -> set:
        if not ids:
            return set()
        rows = await self.find(ConversationMessage.id.in_(list(ids)), session=session)
        return {row.id for row in rows}


class ConversationRepository(TenantScopedRepository[Conversation]):
    model = Conversation

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], **kwargs: Any) -> None:
        super().__init__(session_factory, **kwargs)
        self.messages = MessageRepository(session_factory, **kwargs)

    def unscoped(self) -> "ConversationRepository":
        clone = super().unscoped()
        clone.messages = self.messages.unscoped()
        return clone

    async def create(self, user_id: str, tenant_id: str, title: Optional[str] = None) -> Conversation:
        conversation = Conversation(
            tenant_id=tenant_id,
            user_id=user_id,
            title=title or "Nouvelle conversation",
            context={},
            is_active=True,
        )
        return await self.insert(conversation)

    async def get_owned(self, conversation_id: uuid.UUID, user_id: str) -> Optional[Conversation]:
        return await self.find_one(
            Conversation.id == conversation_id,
            Conversation.user_id == user_id,
        )

    async def append_messages(
        self,
        conversation_id: uuid.UUID,
        rows: Sequence[ConversationMessage],
    ) -> List[ConversationMessage]:
        """
        Append rows and bump last_activity in one transaction.

        Rows whose id is already stored are skipped, so re-running a job
        that already committed its append stores nothing twice.
        Returns the full, ordered message list after the append.
        """
        async with self.transaction() as session:
            bumped = await self.update(
                Conversation.id == conversation_id,
                values={"last_activity": _utcnow()},
                session=session,
            )
            if not bumped:
                raise NotFoundError(
                    "Conversation not found",
                    details={"conversation_id": str(conversation_id)},
                )

            stored = await self.messages.existing_ids([r.id for r in rows], session=session)
            for row in rows:
                if row.id in stored:
                    continue
                row.conversation_id = conversation_id
                await self.messages.insert(row, session=session)

            return await self.messages.list_for(conversation_id, session=session)


# ── Summaries ───────────────────────────────────────────────

class SummaryRepository(TenantScopedRepository[ConversationSummary]):
    model = ConversationSummary

    async def upsert_summary(
        self,
        tenant_id: str,
        conversation_id: uuid.UUID,
        *,
        user_id: Optional[str],
        summary: str,
        key_points: List[str],
        entities: List[Dict[str, str]],
        last_message_timestamp: Optional[datetime],
    ) -> ConversationSummary:
        return await self.upsert(
            {
                "tenant_id": tenant_id,
                "conversation_id": conversation_id,
                "user_id": user_id,
                "summary": summary,
                "key_points": key_points,
                "entities": entities,
                "last_message_timestamp": last_message_timestamp,
                "updated_at": _utcnow(),
            },
            conflict_keys=("tenant_id", "conversation_id"),
        )

    async def for_conversation(self, conversation_id: uuid.UUID) -> Optional[ConversationSummary]:
        return await self.find_one(ConversationSummary.conversation_id == conversation_id)

    async def for_period(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[ConversationSummary]:
        criteria = []
        if start is not None:
            criteria.append(ConversationSummary.last_message_timestamp >= start)
        if end is not None:
            criteria.append(ConversationSummary.last_message_timestamp <= end)
        return await self.find(
            *criteria,
            order_by=[ConversationSummary.last_message_timestamp.desc()],
            limit=limit,
        )


# ── Business Data ───────────────────────────────────────────

class ProductRepository(TenantScopedRepository[Product]):
    model = Product

    async def active(self, category: Optional[str] = None) -> List[Product]:
        criteria = [Product.is_active.is_(True)]
        if category:
            criteria.append(Product.category.ilike(f"%{category}%"))
        return await self.find(*criteria, order_by=[Product.name])

    async def out_of_stock(self) -> List[Product]:
        return await self.find(
            Product.is_active.is_(True),
            Product.stock <= 0,
            order_by=[Product.name],
        )


class SaleRepository(TenantScopedRepository[Sale]):
    model = Sale

    async def between(self, start: datetime, end: datetime) -> List[Sale]:
        return await self.find(
            Sale.date >= start,
            Sale.date <= end,
            order_by=[Sale.date.desc()],
        )


class EmployeeRepository(TenantScopedRepository[Employee]):
    model = Employee

    async def listing(self, active_only: bool = True) -> List[Employee]:
        criteria = [Employee.is_active.is_(True)] if active_only else []
        return await self.find(*criteria, order_by=[Employee.last_name, Employee.first_name])

    async def by_name(self, name: str) -> Optional[Employee]:
        pattern = f"%{name}%"
        return await self.find_one(
            Employee.first_name.ilike(pattern) | Employee.last_name.ilike(pattern)
        )


class AccountingRepository(TenantScopedRepository[AccountingEntry]):
    model = AccountingEntry

    async def expenses_between(self, start: datetime, end: datetime) -> List[AccountingEntry]:
        return await self.find(
            AccountingEntry.type == "dépense",
            AccountingEntry.date >= start,
            AccountingEntry.date <= end,
        )


class TenantRepository:
    """The tenant row itself: readable only for the ambient tenant."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def current(self) -> Optional[Tenant]:
        tenant_id = require_tenant_id()
        async with self._session_factory() as session:
            result = await session.execute(select(Tenant).where(Tenant.id == tenant_id))
            return result.scalar_one_or_none()

    async def create(self, tenant: Tenant) -> Tenant:
        async with self._session_factory() as session:
            session.add(tenant)
            await session.commit()
            return tenant


@dataclass
class Repositories:
    """Every repository bound to one session factory."""

    conversations: ConversationRepository
    summaries: SummaryRepository
    products: ProductRepository
    sales: SaleRepository
    employees: EmployeeRepository
    accounting: AccountingRepository
    tenants: TenantRepository

    @classmethod
    def build(cls, session_factory: async_sessionmaker[AsyncSession]) -> "Repositories":
        return cls(
            conversations=ConversationRepository(session_factory),
            summaries=SummaryRepository(session_factory),
            products=ProductRepository(session_factory),
            sales=SaleRepository(session_factory),
            employees=EmployeeRepository(session_factory),
            accounting=AccountingRepository(session_factory),
            tenants=TenantRepository(session_factory),
        )
