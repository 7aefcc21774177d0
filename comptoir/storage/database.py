# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Database Connection Manager — Async SQLAlchemy engine and session factory.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger("comptoir.database")


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models."""
    pass


class Database:
    """
    Manages the async SQLAlchemy engine and session factory.

    Usage:
        db = Database("postgresql+asyncpg://...")
        await db.init()       # Create tables (dev) or verify connection
        session = db.session() # Get a new AsyncSession
        await db.close()      # Dispose engine on shutdown

    SQLite URLs (tests) share one connection so ":memory:" survives
    across sessions.
    """

    def __init__(self, database_url: str, **engine_kwargs: Any) -> None:
        if database_url.startswith("sqlite"):
            engine_kwargs.setdefault("poolclass", StaticPool)
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            engine_kwargs.setdefault("pool_size", 10)
            engine_kwargs.setdefault("max_overflow", 20)
            engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine: AsyncEngine = create_async_engine(database_url, echo=False, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def session(self) -> AsyncSession:
        """Create a new async session."""
        return self.session_factory()

    async def init(self, create_tables: bool = True) -> None:
        """
        Create all tables if they don't exist, or just verify the connection.

        NOTE: For production, use Alembic migrations instead.
        """
        # Register every model on Base.metadata before create_all
        from comptoir.storage import models  # noqa: F401

        async with self.engine.begin() as conn:
            if create_tables:
                await conn.run_sync(Base.metadata.create_all)
            else:
                await conn.execute(text("SELECT 1"))
        logger.info("Database ready (dialect=%s)", self.dialect)

    async def close(self) -> None:
        """Dispose the engine and release all connections."""
        await self.engine.dispose()
        logger.info("Database connections closed")
