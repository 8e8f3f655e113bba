from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
import time

from urlping.cancel import CancelToken
from urlping.config import BACKENDS, ConfigError, ProbeConfig
from urlping.engine import RunSummary, run_probes
from urlping.models import ProbeResult


DEFAULT_URLS_PATH = "urls.txt"


def load_urls(path: str) -> list[str]:
    """Read one URL per line; blank lines and # comments are skipped.

    Entries without an http:// or https:// scheme get https:// prepended."""
    urls: list[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            url = line.strip()
            if not url or url.startswith("#"):
                continue
            if not url.startswith(("http://", "https://")):
                url = "https://" + url
            urls.append(url)
    return urls


def format_duration(ms: float) -> str:
    if ms >= 1000:
        return f"{ms / 1000:.3f}s"
    return f"{ms:.3f}ms"


def format_result(result: ProbeResult) -> str:
    when = time.strftime("%H:%M:%S", time.localtime(result.timestamp))
    if result.error is None:
        return f"[{when}] {result.url} {result.status_code} in {format_duration(result.duration_ms)}"
    return f"[{when}] {result.url} ERROR: {result.error}"


def print_result(result: ProbeResult) -> None:
    print(format_result(result), flush=True)


def print_summary(summary: RunSummary) -> None:
    stats = summary.stats
    print("---- summary ----")
    print(f"requests: {stats.total}, success: {stats.success_count}, failed: {stats.failed_count}")
    if stats.total > 0:
        print(
            f"avg latency: {format_duration(stats.avg_latency_ms)}, "
            f"min: {format_duration(stats.min_latency_ms)}, "
            f"max: {format_duration(stats.max_latency_ms)}"
        )
    print(f"total runtime: {format_duration(summary.elapsed_s * 1000)}")


def install_signal_handlers(cancel: CancelToken) -> None:
    """Cancel the run on SIGINT/SIGTERM.

    The token is set from a helper thread; the handler itself takes no locks."""

    def _handler(signum, frame) -> None:
        print("\nreceived interrupt, shutting down...", flush=True)
        threading.Thread(
            target=cancel.cancel,
            args=(f"received {signal.Signals(signum).name}",),
            daemon=True,
        ).start()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def build_parser() -> argparse.ArgumentParser:
    defaults = ProbeConfig()
    parser = argparse.ArgumentParser(description="Probe HTTP endpoints for liveness.")
    parser.add_argument("--urls", default=DEFAULT_URLS_PATH, help="File with URLs (one per line). Lines starting with # ignored")
    parser.add_argument("--concurrency", type=int, default=defaults.concurrency, help="Max concurrent requests")
    parser.add_argument("--rate", type=int, default=defaults.rate, help="Rate limit in requests per second (0 = unlimited)")
    parser.add_argument("--timeout", type=float, default=defaults.timeout, help="HTTP request timeout in seconds")
    parser.add_argument("--count", type=int, default=defaults.count, help="How many pings per URL")
    parser.add_argument("--interval", type=float, default=defaults.interval, help="Seconds between ping rounds")
    parser.add_argument("--retries", type=int, default=defaults.retries, help="Retries on failure (per request)")
    parser.add_argument("--backend", choices=BACKENDS, default=defaults.backend, help="HTTP client backend")
    parser.add_argument("--impersonate", default=defaults.impersonate, help="Browser profile for the curl backend")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ProbeConfig(
            concurrency=args.concurrency,
            rate=args.rate,
            timeout=args.timeout,
            count=args.count,
            interval=args.interval,
            retries=args.retries,
            backend=args.backend,
            impersonate=args.impersonate,
        ).validate()
    except ConfigError as exc:
        parser.error(str(exc))

    try:
        urls = load_urls(args.urls)
    except OSError as exc:
        print(f"failed to load urls: {exc}", file=sys.stderr)
        return 1
    if not urls:
        print("no urls provided", file=sys.stderr)
        return 1

    cancel = CancelToken()
    install_signal_handlers(cancel)

    summary = run_probes(urls, config, cancel=cancel, sink=print_result)
    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
