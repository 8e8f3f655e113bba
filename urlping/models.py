from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from .cancel import ProbeCancelled


@dataclass(frozen=True)
class Task:
    round_index: int
    url: str


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one task: the last attempt made against a URL.

    status_code is 0 when no HTTP response was obtained. error is set only
    when the attempt failed before yielding a status (transport failure or
    cancellation)."""

    url: str
    status_code: int
    duration_ms: float
    error: Optional[BaseException]
    timestamp: float
    attempts: int = 1
    round_index: int = 0

    @property
    def retryable(self) -> bool:
        """Transport errors and 5xx responses are worth another attempt."""
        return self.error is not None or self.status_code >= 500

    @property
    def ok(self) -> bool:
        """Success as counted in the aggregate: no error and status 0 or below 400."""
        return self.error is None and (self.status_code == 0 or self.status_code < 400)

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, ProbeCancelled)

    @classmethod
    def cancelled_result(cls, url: str, exc: ProbeCancelled, attempts: int = 0) -> "ProbeResult":
        return cls(
            url=url,
            status_code=0,
            duration_ms=0.0,
            error=exc,
            timestamp=time.time(),
            attempts=attempts,
        )


@dataclass
class AggregateStats:
    """Running totals. Latency figures only count error-free results."""

    total: int = 0
    success_count: int = 0
    failed_count: int = 0
    cancelled_count: int = 0
    latency_samples: int = 0
    sum_latency_ms: float = 0.0
    min_latency_ms: Optional[float] = None
    max_latency_ms: Optional[float] = None

    def record(self, result: ProbeResult) -> None:
        self.total += 1
        if result.ok:
            self.success_count += 1
        else:
            self.failed_count += 1
        if result.cancelled:
            self.cancelled_count += 1

        if result.error is None:
            latency = result.duration_ms
            self.latency_samples += 1
            self.sum_latency_ms += latency
            if self.min_latency_ms is None or latency < self.min_latency_ms:
                self.min_latency_ms = latency
            if self.max_latency_ms is None or latency > self.max_latency_ms:
                self.max_latency_ms = latency

    @property
    def average_latency_ms(self) -> float:
        if not self.latency_samples:
            return 0.0
        return self.sum_latency_ms / self.latency_samples

    def snapshot(self) -> "StatsSnapshot":
        return StatsSnapshot(
            total=self.total,
            success_count=self.success_count,
            failed_count=self.failed_count,
            cancelled_count=self.cancelled_count,
            latency_samples=self.latency_samples,
            avg_latency_ms=self.average_latency_ms,
            min_latency_ms=self.min_latency_ms or 0.0,
            max_latency_ms=self.max_latency_ms or 0.0,
            timestamp=time.time(),
        )


@dataclass(frozen=True)
class StatsSnapshot:
    total: int
    success_count: int
    failed_count: int
    cancelled_count: int
    latency_samples: int
    avg_latency_ms: float
    min_latency_ms: float
    max_latency_ms: float
    timestamp: float
