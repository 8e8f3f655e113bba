"""Tests for the CancelToken class."""

import threading
import time
import unittest
from concurrent.futures import Future, ThreadPoolExecutor

from urlping.cancel import CancelToken, ProbeCancelled


class TestCancelToken(unittest.TestCase):
    """The token is set once and wakes every registered waiter."""

    def test_cancel_is_idempotent(self):
        token = CancelToken()
        self.assertTrue(token.cancel("first"))
        self.assertFalse(token.cancel("second"))
        self.assertTrue(token.cancelled)
        self.assertEqual(token.reason, "first")

    def test_callbacks_run_once(self):
        token = CancelToken()
        calls = []
        token.add_callback(lambda: calls.append(1))
        token.cancel()
        token.cancel()
        self.assertEqual(calls, [1])

    def test_callback_added_after_cancel_runs_immediately(self):
        token = CancelToken()
        token.cancel()
        calls = []
        token.add_callback(lambda: calls.append(1))
        self.assertEqual(calls, [1])

    def test_unregistered_callback_is_not_run(self):
        token = CancelToken()
        calls = []
        unregister = token.add_callback(lambda: calls.append(1))
        unregister()
        token.cancel()
        self.assertEqual(calls, [])

    def test_failing_callback_does_not_block_others(self):
        token = CancelToken()
        calls = []

        def boom():
            raise RuntimeError("boom")

        token.add_callback(boom)
        token.add_callback(lambda: calls.append(1))
        with self.assertLogs("urlping.cancel", level="ERROR"):
            token.cancel()
        self.assertEqual(calls, [1])

    def test_raise_if_cancelled(self):
        token = CancelToken()
        token.raise_if_cancelled()
        token.cancel("stop")
        with self.assertRaises(ProbeCancelled) as ctx:
            token.raise_if_cancelled()
        self.assertIn("stop", str(ctx.exception))


class TestCancelTokenWaits(unittest.TestCase):
    """Sleeps and future waits resolve promptly in favour of cancellation."""

    def test_sleep_completes_when_not_cancelled(self):
        token = CancelToken()
        start = time.time()
        token.sleep(0.05)
        self.assertGreaterEqual(time.time() - start, 0.04)

    def test_sleep_interrupted_by_cancel(self):
        token = CancelToken()
        threading.Timer(0.05, token.cancel).start()
        start = time.time()
        with self.assertRaises(ProbeCancelled):
            token.sleep(10)
        self.assertLess(time.time() - start, 2.0)

    def test_wait_for_returns_result(self):
        token = CancelToken()
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(lambda: 42)
            self.assertEqual(token.wait_for(future), 42)

    def test_wait_for_reraises_future_exception(self):
        token = CancelToken()
        future = Future()
        future.set_exception(ConnectionError("refused"))
        with self.assertRaises(ConnectionError):
            token.wait_for(future)

    def test_wait_for_abandons_future_on_cancel(self):
        token = CancelToken()
        release = threading.Event()
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(release.wait, 5)
            threading.Timer(0.05, token.cancel).start()
            start = time.time()
            with self.assertRaises(ProbeCancelled):
                token.wait_for(future)
            self.assertLess(time.time() - start, 2.0)
            release.set()

    def test_wait_for_timeout(self):
        token = CancelToken()
        future = Future()
        with self.assertRaises(TimeoutError):
            token.wait_for(future, timeout=0.05)


if __name__ == "__main__":
    unittest.main()
