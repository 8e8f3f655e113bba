from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from itertools import count
from typing import Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProbeCancelled(Exception):
    """Raised at a suspension point once the run has been cancelled."""


class CancelToken:
    """One-shot cancellation signal shared by every blocking call of a run.

    cancel() may be called any number of times from any thread; only the
    first call has an effect. Components that block on their own condition
    variables register a wake-up callback with add_callback() so a
    cancellation interrupts their wait instead of being noticed later."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._ids = count()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> bool:
        """Set the signal. Returns False if it was already set."""
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        logger.info("cancellation requested: %s", reason)
        for fn in callbacks:
            self._invoke(fn)
        return True

    def error(self) -> ProbeCancelled:
        return ProbeCancelled(self._reason or "cancelled")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise self.error()

    def add_callback(self, fn: Callable[[], None]) -> Callable[[], None]:
        """Run fn on cancellation (immediately if already cancelled).

        Returns a callable that unregisters fn."""
        with self._lock:
            if not self._event.is_set():
                key = next(self._ids)
                self._callbacks[key] = fn
                return lambda: self._remove(key)
        self._invoke(fn)
        return lambda: None

    def sleep(self, seconds: float) -> None:
        """Sleep for the given duration, raising ProbeCancelled if cancelled first."""
        if self._event.wait(max(0.0, seconds)):
            raise self.error()

    def wait_for(self, future: "Future[T]", timeout: Optional[float] = None) -> T:
        """Wait for future to finish, raising ProbeCancelled if cancelled first.

        The future is abandoned, not interrupted: a running call finishes on
        its own thread and its outcome is discarded."""
        done = threading.Event()
        future.add_done_callback(lambda _f: done.set())
        unregister = self.add_callback(done.set)
        try:
            done.wait(timeout)
        finally:
            unregister()

        if not future.done():
            if self._event.is_set():
                future.cancel()
                raise self.error()
            raise TimeoutError(f"no result after {timeout}s")
        return future.result()

    def _remove(self, key: int) -> None:
        with self._lock:
            self._callbacks.pop(key, None)

    @staticmethod
    def _invoke(fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception:  # noqa: BLE001
            logger.exception("cancellation callback %r failed", fn)
