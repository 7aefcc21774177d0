# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Comptoir Application Entry Point.

FastAPI app with lifespan, middleware and the API routers. Chat turns
are processed by the Celery worker (comptoir.workers.main).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from comptoir.api.chat import router as chat_router
from comptoir.api.errors import comptoir_error_handler
from comptoir.api.middleware import TenantContextMiddleware, TraceMiddleware
from comptoir.api.observability import router as observability_router
from comptoir.api.summary import router as summary_router
from comptoir.core.config import settings
from comptoir.core.context import init_platform_context
from comptoir.core.errors import ComptoirError
from comptoir.core.logging import setup_logging
from comptoir.kernel.redis_client import close_redis_pool, get_redis_pool
from comptoir.storage.database import Database

logger = logging.getLogger("comptoir.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup/shutdown of platform resources."""
    setup_logging(settings.LOG_LEVEL)
    redis = await get_redis_pool()
    database = Database(settings.DATABASE_URL)
    await database.init(create_tables=settings.COMPTOIR_ENV != "prod")
    ctx = init_platform_context(redis, database)
    logger.info("[Comptoir] Platform ready (env=%s)", settings.COMPTOIR_ENV)
    yield
    await ctx.queue.drain()
    await database.close()
    await close_redis_pool()
    logger.info("[Comptoir] Shutdown complete")


app = FastAPI(
    title="Comptoir",
    description="Multi-tenant business assistant chat",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware ───────────────────────────────────────────────
# Last added is outermost; the tenant binding sits closest to the routes
app.add_middleware(TenantContextMiddleware)
app.add_middleware(TraceMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Error Handlers ──────────────────────────────────────────
app.add_exception_handler(ComptoirError, comptoir_error_handler)

# ── Routes ──────────────────────────────────────────────────
app.include_router(chat_router, prefix="/api")
app.include_router(summary_router, prefix="/api")
app.include_router(observability_router)
