# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Celery application configuration.

Used by the API (enqueue through JobQueue) and by the worker
(comptoir.workers.main). Delivery is at-least-once: tasks are acked
after they finish and re-queued if the worker dies mid-job.
"""

from __future__ import annotations

from celery import Celery

from comptoir.core.config import settings
from comptoir.workers.jobs import CHAT_QUEUE, SUMMARY_QUEUE

celery_app = Celery("comptoir")

celery_app.conf.broker_url = settings.broker_url
celery_app.conf.result_backend = settings.result_backend

# Task configuration
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

# At-least-once delivery
celery_app.conf.task_acks_late = True
celery_app.conf.task_reject_on_worker_lost = True
celery_app.conf.worker_prefetch_multiplier = 1

# Job state visibility (waiting / active / completed / failed)
celery_app.conf.task_track_started = True
celery_app.conf.result_expires = settings.JOB_RESULT_EXPIRES

celery_app.conf.task_soft_time_limit = max(1, settings.JOB_TIME_LIMIT - 5)
celery_app.conf.task_time_limit = settings.JOB_TIME_LIMIT

celery_app.conf.task_routes = {
    "comptoir.chat.*": {"queue": CHAT_QUEUE},
    "comptoir.summary.*": {"queue": SUMMARY_QUEUE},
}
celery_app.conf.task_default_queue = CHAT_QUEUE
