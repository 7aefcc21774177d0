# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
API Middleware — Trace ID propagation and request tenant binding.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from comptoir.api.deps import resolve_tenant_id
from comptoir.core.tenant import tenant_scope

logger = logging.getLogger("comptoir.api")


class TraceMiddleware(BaseHTTPMiddleware):
    """
    Generates or propagates X-Trace-Id header for every request.
    Also logs request duration.
    """

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get("X-Trace-Id", str(uuid.uuid4()))
        request.state.trace_id = trace_id

        start = time.time()
        response: Response = await call_next(request)
        elapsed = (time.time() - start) * 1000

        response.headers["X-Trace-Id"] = trace_id
        logger.info(
            "[api] %s %s → %d (%.0fms)",
            request.method, request.url.path,
            response.status_code, elapsed,
            extra={"trace_id": trace_id},
        )
        return response


class TenantContextMiddleware:
    """
    Bind the request's tenant for the whole downstream call.

    Pure ASGI so the binding covers the endpoint, its dependencies and
    anything they await. Requests without a tenant pass through unbound;
    the route dependencies reject them.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope.get("headers", [])}
        tenant_id = resolve_tenant_id(headers.get("authorization"), headers.get("x-tenant-id"))
        if not tenant_id:
            await self.app(scope, receive, send)
            return

        with tenant_scope(tenant_id):
            await self.app(scope, receive, send)
