from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from .backoff import BackoffStrategy
from .cancel import CancelToken, ProbeCancelled
from .models import ProbeResult
from .prober import BaseProber

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Runs up to max_retries + 1 prober attempts for one URL.

    Only transport errors and 5xx responses are retried; any other outcome
    ends the loop at once. The last observed result is returned when the
    budget runs out, successful or not."""

    def __init__(self, prober: BaseProber, max_retries: int = 2, backoff: Optional[BackoffStrategy] = None) -> None:
        self._prober = prober
        self._max_retries = max_retries
        self._backoff = backoff or BackoffStrategy()

    def run(self, url: str, cancel: CancelToken) -> ProbeResult:
        last = None
        for attempt in range(self._max_retries + 1):
            if cancel.cancelled:
                return ProbeResult.cancelled_result(url, cancel.error(), attempts=attempt)

            last = replace(self._prober.probe(url, cancel), attempts=attempt + 1)
            if not last.retryable:
                return last

            if attempt < self._max_retries:
                delay = self._backoff.get_sleep(attempt)
                logger.debug(
                    "attempt %d for %s failed (status=%d error=%r), retrying in %.3fs",
                    attempt + 1, url, last.status_code, last.error, delay,
                )
                try:
                    cancel.sleep(delay)
                except ProbeCancelled as exc:
                    return ProbeResult.cancelled_result(url, exc, attempts=attempt + 1)
        return last
