from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from .cancel import CancelToken


class AdmissionGate:
    """Bounds how many tasks do network work at the same time.

    A task takes a permit before probing and gives it back on every exit
    path; permit() wraps both. Waiting for a permit is interrupted by
    cancellation."""

    def __init__(self, limit: int) -> None:
        self._cv = threading.Condition()
        self._limit = max(1, int(limit))
        self._active = 0
        self._peak = 0

    def acquire(self, cancel: CancelToken) -> None:
        """Block until a permit is free. Raises ProbeCancelled on cancellation."""
        unregister = cancel.add_callback(self._wake)
        try:
            with self._cv:
                while self._active >= self._limit:
                    cancel.raise_if_cancelled()
                    self._cv.wait()
                cancel.raise_if_cancelled()
                self._active += 1
                self._peak = max(self._peak, self._active)
        finally:
            unregister()

    def release(self) -> None:
        with self._cv:
            self._active = max(0, self._active - 1)
            self._cv.notify()

    @contextmanager
    def permit(self, cancel: CancelToken) -> Iterator[None]:
        self.acquire(cancel)
        try:
            yield
        finally:
            self.release()

    def _wake(self) -> None:
        with self._cv:
            self._cv.notify_all()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active(self) -> int:
        return self._active

    @property
    def peak(self) -> int:
        return self._peak
