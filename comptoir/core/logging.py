# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Structured Logging — JSON format with trace and tenant context.
"""

from __future__ import annotations

import json
import logging
import sys

from comptoir.core.tenant import get_current_tenant_id


class TenantContextFilter(logging.Filter):
    """Stamp records with the ambient tenant when they carry none."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "tenant_id", None):
            record.tenant_id = get_current_tenant_id()
        return True


class StructuredFormatter(logging.Formatter):
    """JSON log formatter with trace/tenant/job context."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        # Attach context if available
        for key in ("trace_id", "tenant_id", "job_id", "conversation_id"):
            val = getattr(record, key, None)
            if val:
                log_entry[key] = val

        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the API and the workers."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(TenantContextFilter())

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)
