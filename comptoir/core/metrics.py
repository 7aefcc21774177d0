# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Metrics — In-memory counters for chat pipeline observability.

Each process keeps its own Metrics; ``role`` tells the API process apart
from a chat worker in a snapshot.

Counters used by the pipeline:
  api:    chat.accepted, jobs.enqueued:<queue>, jobs.enqueue_failed:<queue>
  worker: chat.turns, chat.response_cache_hit, chat.turn_failed,
          intent:<label>, jobs.retried:<queue>, jobs.failed:<queue>
"""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Any, Deque, Dict

HISTOGRAM_WINDOW = 1000


class Metrics:
    """Per-process counters plus sliding-window latency histograms."""

    def __init__(self, role: str = "api"):
        self.role = role
        self._counters: Dict[str, int] = defaultdict(int)
        self._histograms: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=HISTOGRAM_WINDOW))
        self._start_time = time.time()

    def inc(self, name: str, amount: int = 1) -> None:
        self._counters[name] += amount

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def counters_with_prefix(self, prefix: str) -> Dict[str, int]:
        """``intent:`` -> {"accounting": 3, ...}"""
        return {
            name[len(prefix):]: value
            for name, value in self._counters.items()
            if name.startswith(prefix)
        }

    def observe(self, name: str, value: float) -> None:
        self._histograms[name].append(value)

    def snapshot(self) -> Dict[str, Any]:
        result = {
            "process": self.role,
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "counters": dict(self._counters),
        }
        intents = self.counters_with_prefix("intent:")
        if intents:
            result["intents"] = intents
        for name, values in self._histograms.items():
            if not values:
                continue
            ordered = sorted(values)
            result[f"histogram_{name}"] = {
                "count": len(ordered),
                "avg": round(sum(ordered) / len(ordered), 2),
                "p95": round(ordered[min(len(ordered) - 1, int(len(ordered) * 0.95))], 2),
                "max": round(ordered[-1], 2),
            }
        return result


# One per process; worker processes switch the role at start-up.
platform_metrics = Metrics()
