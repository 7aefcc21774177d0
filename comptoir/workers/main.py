# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Celery worker entrypoint.

Run with:
    celery -A comptoir.workers.main:celery_app worker -Q chat,summary --loglevel=info

Tasks are registered by importing comptoir.workers.tasks; there is no
autodiscovery.
"""

from __future__ import annotations

import logging

from celery.signals import worker_process_init

from comptoir.core.config import settings
from comptoir.core.logging import setup_logging
from comptoir.core.metrics import platform_metrics
from comptoir.workers import tasks  # noqa: F401
from comptoir.workers.celery_app import celery_app

logger = logging.getLogger("comptoir.workers")


@worker_process_init.connect
def setup_worker_process(**kwargs):
    """JSON logs like the API; metrics of this process report as a worker."""
    setup_logging(settings.LOG_LEVEL)
    platform_metrics.role = "worker"
    logger.info("Worker process started (env=%s)", settings.COMPTOIR_ENV)


__all__ = ["celery_app"]
