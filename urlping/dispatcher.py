from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import List, Optional, Sequence

from .admission import AdmissionGate
from .cancel import CancelToken, ProbeCancelled
from .metrics import ResultAggregator
from .models import ProbeResult, Task
from .rate_limiter import RateLimiter
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class RoundScheduler:
    """Spawns one task per (round, URL) and waits for all of them.

    Rounds are spaced by interval seconds but not fenced: tasks of round i
    may still be running when round i + 1 is spawned. Only the rate limiter
    and the admission gate throttle them. Cancellation stops spawning; tasks
    already spawned still report exactly one (cancelled) result each.
    """

    def __init__(
        self,
        urls: Sequence[str],
        retry_policy: RetryPolicy,
        aggregator: ResultAggregator,
        gate: AdmissionGate,
        cancel: CancelToken,
        rate_limiter: Optional[RateLimiter] = None,
        count: int = 1,
        interval: float = 0.0,
        max_workers: Optional[int] = None,
    ) -> None:
        self._urls = list(urls)
        self._retry = retry_policy
        self._aggregator = aggregator
        self._gate = gate
        self._cancel = cancel
        self._limiter = rate_limiter
        self._count = count
        self._interval = interval
        self._max_workers = max_workers or gate.limit
        self.spawned = 0

    def run(self) -> int:
        """Schedule every round, wait for the tasks and close the aggregator.

        Returns the number of tasks spawned."""
        executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="probe-task")
        futures: List[Future] = []
        try:
            self._schedule(executor, futures)
            wait(futures)
        finally:
            executor.shutdown(wait=True)
            self._aggregator.close()
        return self.spawned

    def _schedule(self, executor: ThreadPoolExecutor, futures: List[Future]) -> None:
        for round_index in range(self._count):
            for url in self._urls:
                if self._cancel.cancelled:
                    logger.info("cancelled during round %d, no further tasks spawned", round_index)
                    return
                futures.append(executor.submit(self._run_task, Task(round_index=round_index, url=url)))
                self.spawned += 1

            if round_index < self._count - 1:
                try:
                    self._cancel.sleep(self._interval)
                except ProbeCancelled:
                    logger.info("cancelled after round %d", round_index)
                    return

    def _run_task(self, task: Task) -> None:
        try:
            if self._limiter is not None:
                self._limiter.acquire(self._cancel)
            with self._gate.permit(self._cancel):
                result = self._retry.run(task.url, self._cancel)
                self._aggregator.submit(replace(result, round_index=task.round_index))
        except ProbeCancelled as exc:
            result = ProbeResult.cancelled_result(task.url, exc)
            self._aggregator.submit(replace(result, round_index=task.round_index))
        except Exception as exc:  # noqa: BLE001
            logger.exception("probe task for %s failed", task.url)
            self._aggregator.submit(
                ProbeResult(
                    url=task.url,
                    status_code=0,
                    duration_ms=0.0,
                    error=exc,
                    timestamp=time.time(),
                    attempts=0,
                    round_index=task.round_index,
                )
            )
