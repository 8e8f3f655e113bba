from __future__ import annotations

from .config import ProbeConfig
from .prober import BaseProber, CurlProber, RequestsProber


class ProberFactory:
    """Creates the prober shared by all tasks of a run.

    The requests backend shares one pooled session across threads. The curl
    backend impersonates a browser and keeps its sessions per exchange."""

    def __init__(self, config: ProbeConfig) -> None:
        self._config = config

    def create_prober(self) -> BaseProber:
        backend = self._config.backend
        if backend == "requests":
            return RequestsProber(
                timeout=self._config.timeout,
                pool_size=self._config.concurrency,
            )
        if backend == "curl":
            return CurlProber(
                timeout=self._config.timeout,
                impersonate=self._config.impersonate,
            )
        raise ValueError(f"Unknown backend: {backend}")
