from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from .admission import AdmissionGate
from .backoff import BackoffStrategy
from .cancel import CancelToken
from .config import ProbeConfig
from .dispatcher import RoundScheduler
from .factory import ProberFactory
from .metrics import ResultAggregator, ResultSink
from .models import StatsSnapshot
from .prober import BaseProber
from .rate_limiter import RateLimiter
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSummary:
    stats: StatsSnapshot
    elapsed_s: float
    spawned: int
    cancelled: bool


def run_probes(
    urls: Sequence[str],
    config: ProbeConfig,
    cancel: Optional[CancelToken] = None,
    sink: Optional[ResultSink] = None,
    prober: Optional[BaseProber] = None,
    backoff: Optional[BackoffStrategy] = None,
) -> RunSummary:
    """Probe every URL config.count times and return the aggregate summary.

    Results are passed to sink as they complete. The run stops early when
    cancel is triggered; the summary then covers the results collected so
    far. A prober may be injected; otherwise one is built for config.backend
    and closed when the run ends.
    """
    if not urls:
        raise ValueError("no urls provided")
    config.validate()
    cancel = cancel or CancelToken()

    owns_prober = prober is None
    prober = prober or ProberFactory(config).create_prober()
    limiter = RateLimiter(config.rate)
    aggregator = ResultAggregator(sink=sink)
    scheduler = RoundScheduler(
        urls=urls,
        retry_policy=RetryPolicy(prober, max_retries=config.retries, backoff=backoff),
        aggregator=aggregator,
        gate=AdmissionGate(config.concurrency),
        cancel=cancel,
        rate_limiter=limiter if limiter.enabled else None,
        count=config.count,
        interval=config.interval,
    )

    logger.info(
        "probing %d url(s) x %d round(s), concurrency=%d rate=%d retries=%d",
        len(urls), config.count, config.concurrency, config.rate, config.retries,
    )
    start = time.perf_counter()
    aggregator.start()
    limiter.start(cancel)
    try:
        spawned = scheduler.run()
    finally:
        limiter.stop()
        if owns_prober:
            prober.close()

    return RunSummary(
        stats=aggregator.close(),
        elapsed_s=time.perf_counter() - start,
        spawned=spawned,
        cancelled=cancel.cancelled,
    )
