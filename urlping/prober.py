from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Optional

import requests
from curl_cffi import requests as curl_requests
from requests.adapters import HTTPAdapter

from .cancel import CancelToken, ProbeCancelled
from .models import ProbeResult

logger = logging.getLogger(__name__)


class BaseProber(ABC):
    """Runs single probe attempts against a URL.

    An attempt is a HEAD request, followed by a GET for the same attempt
    when the HEAD fails at the transport level. A response with any status
    code counts as reachable; error is set only when neither request got a
    response or the run was cancelled.

    Each exchange runs on its own daemon thread while the calling task waits
    on the cancellation token, so a cancelled run neither sits out a slow
    request nor keeps the process alive for it. The abandoned request is not
    aborted; it ends on its own timeout and its outcome is discarded.
    """

    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout
        self._closed = False

    def probe(self, url: str, cancel: CancelToken) -> ProbeResult:
        started_at = time.time()
        start = time.perf_counter()
        status_code = 0
        error = None

        try:
            self.validate(url)
            future: Future = Future()
            threading.Thread(target=self._run_exchange, args=(future, url), name="probe-io", daemon=True).start()
            status_code = cancel.wait_for(future)
        except ProbeCancelled as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001
            logger.debug("probe %s failed: %r", url, exc)
            error = exc

        return ProbeResult(
            url=url,
            status_code=status_code,
            duration_ms=(time.perf_counter() - start) * 1000.0,
            error=error,
            timestamp=started_at,
        )

    def validate(self, url: str) -> None:
        if not url:
            raise ValueError("url is required")
        if self._closed:
            raise RuntimeError("prober is closed")

    def close(self) -> None:
        """Refuse further probes; abandoned exchanges are not waited for."""
        self._closed = True

    def _run_exchange(self, future: Future, url: str) -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(self._exchange(url))
        except Exception as exc:  # noqa: BLE001
            future.set_exception(exc)

    def _exchange(self, url: str) -> int:
        try:
            return self.fetch(url, "HEAD")
        except Exception as exc:  # noqa: BLE001
            logger.debug("HEAD %s failed (%r), falling back to GET", url, exc)
        return self.fetch(url, "GET")

    @abstractmethod
    def fetch(self, url: str, method: str) -> int:
        """Perform one request, release the response and return its status code."""
        ...


class RequestsProber(BaseProber):
    """Prober backed by one requests.Session shared by every task.

    The adapter's pool is sized to the concurrency so that keep-alive
    connections are reused across rounds."""

    def __init__(self, timeout: float = 5.0, pool_size: int = 10, session: Optional[requests.Session] = None) -> None:
        super().__init__(timeout=timeout)
        self._owns_session = session is None
        self._session = session or self._build_session(pool_size)

    @staticmethod
    def _build_session(pool_size: int) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(pool_connections=max(pool_size, 10), pool_maxsize=max(pool_size, 10))
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def fetch(self, url: str, method: str) -> int:
        resp = self._session.request(
            method=method,
            url=url,
            timeout=self._timeout,
            allow_redirects=True,
            stream=True,
        )
        try:
            return resp.status_code
        finally:
            resp.close()

    def close(self) -> None:
        super().close()
        if self._owns_session:
            self._session.close()


class CurlProber(BaseProber):
    """Prober backed by curl_cffi with browser TLS impersonation.

    A session is created per exchange; curl handles are not shared between
    threads."""

    def __init__(self, timeout: float = 5.0, impersonate: str = "chrome120") -> None:
        super().__init__(timeout=timeout)
        self._impersonate = impersonate

    def fetch(self, url: str, method: str) -> int:
        session = curl_requests.Session()
        try:
            resp = session.request(
                method=method,
                url=url,
                impersonate=self._impersonate,
                timeout=self._timeout,
                allow_redirects=True,
            )
            return resp.status_code
        finally:
            session.close()
