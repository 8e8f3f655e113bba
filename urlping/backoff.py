from __future__ import annotations

import random


class BackoffStrategy:
    """Exponential backoff with jitter for retry delays.

    For attempt index a (0-based, the attempt that just failed) the base is
    base_ms * 2^a and the delay is base plus a uniform jitter in [0, base),
    so it always falls in [base, 2 * base). There is no upper cap."""

    def __init__(self, base_ms: float = 100.0) -> None:
        self._base = base_ms

    def get_delay_ms(self, attempt: int) -> float:
        """Calculate the backoff delay in milliseconds before the next attempt."""
        base = self._base * (2 ** max(attempt, 0))
        return base + random.random() * base

    def get_sleep(self, attempt: int) -> float:
        """Same as get_delay_ms, in seconds."""
        return self.get_delay_ms(attempt) / 1000.0
