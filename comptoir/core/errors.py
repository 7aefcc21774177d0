# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Error Taxonomy — Domain errors shared by every layer.

The API renders them through comptoir.api.errors; workers let
UpstreamServiceError and DataIntegrityError propagate so the job retries.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional


class ComptoirError(Exception):
    """Base error with a structured, client-safe payload."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        self.trace_id = trace_id or str(uuid.uuid4())
        super().__init__(message)


class ValidationError(ComptoirError):
    """Malformed input at a boundary (bad id, missing tenant id on insert)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class AuthorizationError(ComptoirError):
    """Tenant mismatch on a mutation, or a scoped operation without a tenant."""

    code = "TENANT_MISMATCH"
    status_code = 403


class NotFoundError(ComptoirError):
    code = "NOT_FOUND"
    status_code = 404


class UpstreamServiceError(ComptoirError):
    """LLM provider or queue backend unreachable / timed out."""

    code = "UPSTREAM_UNAVAILABLE"
    status_code = 503


class DataIntegrityError(ComptoirError):
    """Durable store operation failed. Never swallowed."""

    code = "DATA_INTEGRITY"
    status_code = 500
