# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Data Access Guard — Tenant scoping for every tenant-owned table.

All reads and writes on tenant-scoped models go through a
TenantScopedRepository. The ambient tenant (comptoir.core.tenant) is
injected here, and only here:

  - find / find_one / get / count  → narrowed to the ambient tenant
  - insert / upsert                → tenant_id required, must match the ambient tenant
  - update                         → narrowed to the ambient tenant, tenant_id immutable

Cross-tenant access needs the explicit ``unscoped()`` escape hatch,
reserved for trusted maintenance code.

Each method opens its own session and commits within it, unless the
caller passes ``session=`` to group several operations in one transaction
(see ``transaction()``).
"""

from __future__ import annotations

import copy
import logging
from contextlib import asynccontextmanager
from typing import (
    Any, AsyncIterator, Dict, Generic, List, Mapping, Optional, Sequence, Type, TypeVar,
)

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from comptoir.core.errors import AuthorizationError, DataIntegrityError, ValidationError
from comptoir.core.tenant import get_current_tenant_id, require_tenant_id

logger = logging.getLogger("comptoir.guard")

ModelT = TypeVar("ModelT")


class TenantScopedRepository(Generic[ModelT]):
    """Repository base that scopes every statement to the ambient tenant."""

    model: Type[ModelT]

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        scoped: bool = True,
    ) -> None:
        self._session_factory = session_factory
        self._scoped = scoped

    @property
    def is_scoped(self) -> bool:
        return self._scoped

    @property
    def tenant_required(self) -> bool:
        return getattr(self.model, "__tenant_required__", False)

    def unscoped(self) -> "TenantScopedRepository[ModelT]":
        """Return a copy that skips the tenant filter. Maintenance code only."""
        clone = copy.copy(self)
        clone._scoped = False
        logger.info("Tenant filter skipped for %s", self.model.__name__)
        return clone

    # ── Sessions ──────────────────────────────────────────────

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """One session, committed on success, rolled back on any error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Transaction on %s failed: %s", self.model.__name__, exc)
                raise DataIntegrityError(
                    f"Storage operation on {self.model.__name__} failed"
                ) from exc
            except Exception:
                await session.rollback()
                raise

    @asynccontextmanager
    async def _use(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
        else:
            async with self.transaction() as own:
                yield own

    # ── Scoping ───────────────────────────────────────────────

    def scope(self, stmt):
        """Narrow a select/update statement to the ambient tenant."""
        if not self._scoped:
            return stmt
        return stmt.where(self.model.tenant_id == require_tenant_id())

    def check_insert(self, values: Any) -> None:
        """Validate the tenant id of an entity (or column mapping) about to be written."""
        if isinstance(values, Mapping):
            tenant_id = values.get("tenant_id")
        else:
            tenant_id = getattr(values, "tenant_id", None)

        if not tenant_id:
            if self.tenant_required:
                raise ValidationError(
                    f"{self.model.__name__} requires a tenant_id",
                    details={"model": self.model.__name__},
                )
            return

        if not self._scoped:
            return
        if tenant_id != require_tenant_id():
            raise AuthorizationError(
                f"Cannot write {self.model.__name__} for another tenant",
                details={"model": self.model.__name__},
            )

    def _check_update_values(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if "tenant_id" not in values:
            return values
        ambient = get_current_tenant_id() if self._scoped else None
        if ambient is None or values["tenant_id"] != ambient:
            raise AuthorizationError(
                f"tenant_id of {self.model.__name__} is immutable",
                details={"model": self.model.__name__},
            )
        return {k: v for k, v in values.items() if k != "tenant_id"}

    # ── Reads ─────────────────────────────────────────────────

    async def find(
        self,
        *criteria: Any,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        session: Optional[AsyncSession] = None,
    ) -> List[ModelT]:
        stmt = select(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        stmt = self.scope(stmt)
        if order_by is not None:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._use(session) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def find_one(self, *criteria: Any, session: Optional[AsyncSession] = None) -> Optional[ModelT]:
        rows = await self.find(*criteria, limit=1, session=session)
        return rows[0] if rows else None

    async def get(self, entity_id: Any, session: Optional[AsyncSession] = None) -> Optional[ModelT]:
        return await self.find_one(self.model.id == entity_id, session=session)

    async def count(self, *criteria: Any, session: Optional[AsyncSession] = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        stmt = self.scope(stmt)
        async with self._use(session) as s:
            return int((await s.execute(stmt)).scalar_one())

    # ── Writes ────────────────────────────────────────────────

    async def insert(self, entity: ModelT, session: Optional[AsyncSession] = None) -> ModelT:
        self.check_insert(entity)
        async with self._use(session) as s:
            s.add(entity)
            await s.flush()
        return entity

    async def update(
        self,
        *criteria: Any,
        values: Dict[str, Any],
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Update matching rows of the ambient tenant. Returns the row count."""
        values = self._check_update_values(dict(values))
        stmt = update(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        stmt = self.scope(stmt).values(**values).execution_options(synchronize_session=False)
        async with self._use(session) as s:
            result = await s.execute(stmt)
            return result.rowcount

    async def upsert(
        self,
        values: Dict[str, Any],
        conflict_keys: Sequence[str],
        session: Optional[AsyncSession] = None,
    ) -> ModelT:
        """Insert, or update the row sharing conflict_keys. Converges to one row."""
        self.check_insert(values)
        async with self._use(session) as s:
            dialect = s.get_bind().dialect.name
            if dialect == "postgresql":
                from sqlalchemy.dialects.postgresql import insert as dialect_insert
            elif dialect == "sqlite":
                from sqlalchemy.dialects.sqlite import insert as dialect_insert
            else:
                raise NotImplementedError(f"upsert is not supported on {dialect}")

            stmt = dialect_insert(self.model).values(**values)
            changes = {
                key: stmt.excluded[key]
                for key in values
                if key not in conflict_keys and key != "id"
            }
            stmt = stmt.on_conflict_do_update(index_elements=list(conflict_keys), set_=changes)
            await s.execute(stmt)

            criteria = [getattr(self.model, key) == values[key] for key in conflict_keys]
            stmt = select(self.model).where(*criteria).execution_options(populate_existing=True)
            return (await s.execute(self.scope(stmt))).scalar_one()
