"""Process-wide usage metrics for the integration API."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Any

CALL_LOG_SIZE: int = 1000


@dataclass(frozen=True)
class ApiCall:
    endpoint: str
    success: bool
    duration_ms: float
    timestamp: datetime


class ApiMetrics:
    """Call counters plus a bounded log of the most recent calls."""

    def __init__(self, log_size: int = CALL_LOG_SIZE) -> None:
        self._lock = threading.Lock()
        self._log_size = log_size
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._total_calls = 0
            self._total_errors = 0
            self._calls_by_endpoint: dict[str, int] = {}
            self._total_duration_ms = 0.0
            self._recent: deque[ApiCall] = deque(maxlen=self._log_size)

    def record(self, endpoint: str, *, success: bool, duration_ms: float = 0.0, now: datetime | None = None) -> None:
        call = ApiCall(endpoint, success, duration_ms, now or datetime.now(timezone.utc))
        with self._lock:
            self._total_calls += 1
            if not success:
                self._total_errors += 1
            self._calls_by_endpoint[endpoint] = self._calls_by_endpoint.get(endpoint, 0) + 1
            self._total_duration_ms += duration_ms
            self._recent.append(call)

    def snapshot(self, now: datetime | None = None) -> dict[str, Any]:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=1)
        with self._lock:
            average = round(self._total_duration_ms / self._total_calls, 2) if self._total_calls else None
            return {
                "total_calls": self._total_calls,
                "calls_by_endpoint": dict(self._calls_by_endpoint),
                "total_errors": self._total_errors,
                "last_hour_calls": sum(1 for call in self._recent if call.timestamp > cutoff),
                "average_response_time_ms": average,
                "recent_calls_kept": len(self._recent),
            }


api_metrics: ApiMetrics = ApiMetrics()


@contextmanager
def track_call(endpoint: str, metrics: ApiMetrics | None = None) -> Iterator[None]:
    """Record one call (duration and outcome) around the wrapped block."""
    target = metrics or api_metrics
    started = perf_counter()
    success = False
    try:
        yield
        success = True
    finally:
        target.record(endpoint, success=success, duration_ms=(perf_counter() - started) * 1000)
