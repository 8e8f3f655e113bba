from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from .cancel import CancelToken

logger = logging.getLogger(__name__)


class RateLimiter:
    """Ticker-fed token bucket limiting how many tasks start per second.

    A background thread deposits one token every 1/rate seconds into a
    bucket holding at most 2 * rate tokens. A deposit into a full bucket is
    dropped rather than waited on, so idle periods allow only a short burst.
    Calling acquire() blocks the current thread until a token is available or
    the run is cancelled. A rate of 0 disables limiting."""

    def __init__(self, rate: int, capacity: Optional[int] = None) -> None:
        self._rate = rate
        self._capacity = capacity if capacity is not None else 2 * rate
        self._tokens = 0
        self._cv = threading.Condition()
        self._closed = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._unregister = None
        self.issued = 0
        self.dropped = 0

    @property
    def enabled(self) -> bool:
        return self._rate > 0

    @property
    def available(self) -> int:
        with self._cv:
            return self._tokens

    def start(self, cancel: Optional[CancelToken] = None) -> None:
        """Start the ticker thread; it stops on stop() or cancellation."""
        if not self.enabled or self._thread is not None:
            return
        if cancel is not None:
            self._unregister = cancel.add_callback(self.stop)
        self._thread = threading.Thread(target=self._tick, name="rate-ticker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._closed.set()
        with self._cv:
            unregister, self._unregister = self._unregister, None
        if unregister is not None:
            unregister()

    def acquire(self, cancel: CancelToken) -> None:
        """Block until a token is drawn. Raises ProbeCancelled on cancellation."""
        if not self.enabled:
            return
        unregister = cancel.add_callback(self._wake)
        try:
            with self._cv:
                while self._tokens <= 0:
                    cancel.raise_if_cancelled()
                    self._cv.wait()
                cancel.raise_if_cancelled()
                self._tokens -= 1
        finally:
            unregister()

    def _tick(self) -> None:
        period = 1.0 / self._rate
        next_tick = time.monotonic() + period
        while not self._closed.wait(max(0.0, next_tick - time.monotonic())):
            self._deposit()
            now = time.monotonic()
            next_tick += period
            if next_tick < now:
                # missed ticks are skipped, not replayed
                next_tick = now + period
        logger.debug("rate ticker stopped (issued=%d dropped=%d)", self.issued, self.dropped)

    def _deposit(self) -> None:
        with self._cv:
            if self._tokens >= self._capacity:
                self.dropped += 1
                return
            self._tokens += 1
            self.issued += 1
            self._cv.notify()

    def _wake(self) -> None:
        with self._cv:
            self._cv.notify_all()
