from __future__ import annotations

from dataclasses import dataclass

BACKENDS = ("requests", "curl")


class ConfigError(ValueError):
    """Invalid probe settings; fatal at startup."""


@dataclass(frozen=True)
class ProbeConfig:
    """Settings for one probing run, fixed for its whole duration.

    rate is tokens per second (0 disables rate limiting); timeout and
    interval are in seconds; retries counts attempts beyond the first."""

    concurrency: int = 50
    rate: int = 0
    timeout: float = 5.0
    count: int = 1
    interval: float = 2.0
    retries: int = 2
    backend: str = "requests"
    impersonate: str = "chrome120"

    def validate(self) -> "ProbeConfig":
        if self.concurrency <= 0:
            raise ConfigError(f"concurrency must be positive, got {self.concurrency}")
        if self.rate < 0:
            raise ConfigError(f"rate must not be negative, got {self.rate}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.count <= 0:
            raise ConfigError(f"count must be positive, got {self.count}")
        if self.interval < 0:
            raise ConfigError(f"interval must not be negative, got {self.interval}")
        if self.retries < 0:
            raise ConfigError(f"retries must not be negative, got {self.retries}")
        if self.backend not in BACKENDS:
            raise ConfigError(f"unknown backend: {self.backend}")
        return self
