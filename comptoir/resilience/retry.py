# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Retry Policy — Bounded attempts with exponential backoff for queue jobs.
"""

from __future__ import annotations

from dataclasses import dataclass

from comptoir.core.config import settings


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    backoff_base: float = 2.0        # seconds
    backoff_multiplier: float = 2.0  # exponential factor
    max_backoff: float = 300.0       # cap

    @property
    def max_retries(self) -> int:
        """Retries after the first attempt (Celery's max_retries)."""
        return max(0, self.max_attempts - 1)

    def next_delay(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (1-based)."""
        delay = self.backoff_base * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_backoff)

    def can_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts


CHAT_RETRY_POLICY = RetryPolicy(
    max_attempts=settings.CHAT_JOB_MAX_ATTEMPTS,
    backoff_base=settings.JOB_BACKOFF_BASE,
    max_backoff=settings.JOB_BACKOFF_MAX,
)

SUMMARY_RETRY_POLICY = RetryPolicy(
    max_attempts=settings.SUMMARY_JOB_MAX_ATTEMPTS,
    backoff_base=settings.JOB_BACKOFF_BASE,
    max_backoff=settings.JOB_BACKOFF_MAX,
)
