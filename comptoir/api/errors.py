# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
API Error Handling — Unified error structure for domain errors.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from comptoir.core.errors import ComptoirError, DataIntegrityError, UpstreamServiceError

logger = logging.getLogger("comptoir.api")

GENERIC_FAILURE_MESSAGE = (
    "Le service est momentanément indisponible. Veuillez réessayer dans quelques instants."
)


async def comptoir_error_handler(request: Request, exc: ComptoirError) -> JSONResponse:
    """Global exception handler for ComptoirError."""
    trace_id = getattr(request.state, "trace_id", None) or exc.trace_id
    message = exc.message
    details = exc.details
    if isinstance(exc, (UpstreamServiceError, DataIntegrityError)):
        logger.error(
            "%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message,
            extra={"trace_id": trace_id},
        )
        message = GENERIC_FAILURE_MESSAGE
        details = {}

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "code": exc.code,
            "message": message,
            "trace_id": trace_id,
            "details": details,
        },
    )
