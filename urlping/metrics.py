from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

from .models import AggregateStats, ProbeResult, StatsSnapshot

logger = logging.getLogger(__name__)

ResultSink = Callable[[ProbeResult], None]


class ResultAggregator:
    """Collects probe results from many tasks on a single consumer thread.

    Producers only enqueue; the consumer is the one writer of the running
    statistics and hands each result to the sink after counting it. Results
    are therefore seen in completion order."""

    def __init__(self, sink: Optional[ResultSink] = None) -> None:
        self._sink = sink
        self._queue: queue.Queue[Optional[ProbeResult]] = queue.Queue()
        self._lock = threading.Lock()
        self._stats = AggregateStats()
        self._closed = False
        self._thread = threading.Thread(target=self._consume, name="aggregator", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def submit(self, result: ProbeResult) -> None:
        """Enqueue a result for counting; never blocks."""
        if self._closed:
            raise RuntimeError("aggregator is closed")
        self._queue.put(result)

    def close(self, timeout: Optional[float] = None) -> StatsSnapshot:
        """Signal that no more results will arrive, drain the queue and return the final stats."""
        if not self._closed:
            self._closed = True
            self._queue.put(None)
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)
        return self.snapshot()

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return self._stats.snapshot()

    def _consume(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                break
            with self._lock:
                self._stats.record(item)
            if self._sink is not None:
                try:
                    self._sink(item)
                except Exception:  # noqa: BLE001
                    logger.exception("result sink failed for %s", item.url)
