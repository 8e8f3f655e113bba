"""Tests for the RoundScheduler class."""

import threading
import time
import unittest

from urlping.admission import AdmissionGate
from urlping.backoff import BackoffStrategy
from urlping.cancel import CancelToken
from urlping.metrics import ResultAggregator
from urlping.prober import BaseProber
from urlping.rate_limiter import RateLimiter
from urlping.retry import RetryPolicy
from urlping.dispatcher import RoundScheduler


class TrackingProber(BaseProber):
    """Returns 200 after a delay and records the highest number of overlapping calls."""

    def __init__(self, delay=0.02, block=None):
        super().__init__(timeout=1.0)
        self._delay = delay
        self._block = block
        self._lock = threading.Lock()
        self._active = 0
        self.peak = 0
        self.calls = 0

    def fetch(self, url, method):
        with self._lock:
            self._active += 1
            self.calls += 1
            self.peak = max(self.peak, self._active)
        try:
            if self._block is not None:
                self._block.wait(5)
            time.sleep(self._delay)
            return 200
        finally:
            with self._lock:
                self._active -= 1


class TestRoundScheduler(unittest.TestCase):
    """Verify task spawning, concurrency bounds and cancellation."""

    def _scheduler(self, prober, urls, concurrency=2, count=1, interval=0.0, cancel=None, limiter=None):
        self.addCleanup(prober.close)
        results = []
        aggregator = ResultAggregator(sink=results.append)
        aggregator.start()
        cancel = cancel or CancelToken()
        scheduler = RoundScheduler(
            urls=urls,
            retry_policy=RetryPolicy(prober, max_retries=0, backoff=BackoffStrategy(base_ms=1.0)),
            aggregator=aggregator,
            gate=AdmissionGate(concurrency),
            cancel=cancel,
            rate_limiter=limiter,
            count=count,
            interval=interval,
        )
        return scheduler, aggregator, results

    def test_one_result_per_round_and_url(self):
        urls = ["https://a.example", "https://b.example", "https://c.example"]
        scheduler, aggregator, results = self._scheduler(TrackingProber(delay=0.0), urls, count=3)
        spawned = scheduler.run()
        self.assertEqual(spawned, 9)
        self.assertEqual(len(results), 9)
        self.assertEqual(aggregator.snapshot().total, 9)
        self.assertEqual(sorted(r.round_index for r in results), [0] * 3 + [1] * 3 + [2] * 3)

    def test_concurrency_never_exceeds_limit(self):
        prober = TrackingProber(delay=0.03)
        urls = [f"https://host{i}.example" for i in range(12)]
        scheduler, _, results = self._scheduler(prober, urls, concurrency=3)
        scheduler.run()
        self.assertEqual(len(results), 12)
        self.assertLessEqual(prober.peak, 3)
        self.assertGreaterEqual(prober.peak, 2)

    def test_rounds_are_spaced_by_interval(self):
        scheduler, _, _ = self._scheduler(TrackingProber(delay=0.0), ["https://a.example"], count=3, interval=0.1)
        start = time.time()
        scheduler.run()
        self.assertGreaterEqual(time.time() - start, 0.18)

    def test_cancel_during_interval_stops_new_rounds(self):
        cancel = CancelToken()
        urls = ["https://a.example", "https://b.example"]
        scheduler, aggregator, results = self._scheduler(
            TrackingProber(delay=0.0), urls, count=5, interval=10.0, cancel=cancel
        )
        threading.Timer(0.1, cancel.cancel).start()
        start = time.time()
        spawned = scheduler.run()
        self.assertLess(time.time() - start, 3.0)
        self.assertEqual(spawned, 2)
        self.assertEqual(len(results), 2)

    def test_cancel_resolves_in_flight_and_queued_tasks(self):
        block = threading.Event()
        self.addCleanup(block.set)
        cancel = CancelToken()
        urls = [f"https://host{i}.example" for i in range(6)]
        scheduler, aggregator, results = self._scheduler(
            TrackingProber(block=block), urls, concurrency=2, cancel=cancel
        )
        threading.Timer(0.1, cancel.cancel).start()
        start = time.time()
        scheduler.run()
        self.assertLess(time.time() - start, 3.0)
        self.assertEqual(len(results), 6)
        self.assertTrue(all(r.cancelled for r in results))
        snap = aggregator.snapshot()
        self.assertEqual(snap.failed_count, 6)
        self.assertEqual(snap.cancelled_count, 6)

    def test_rate_limiter_paces_task_starts(self):
        cancel = CancelToken()
        limiter = RateLimiter(rate=20)
        limiter.start(cancel)
        self.addCleanup(limiter.stop)
        urls = [f"https://host{i}.example" for i in range(6)]
        scheduler, _, results = self._scheduler(
            TrackingProber(delay=0.0), urls, concurrency=6, cancel=cancel, limiter=limiter
        )
        start = time.time()
        scheduler.run()
        self.assertGreaterEqual(time.time() - start, 0.25)
        self.assertEqual(len(results), 6)


if __name__ == "__main__":
    unittest.main()
