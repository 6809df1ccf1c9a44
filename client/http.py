"""
Rate-limited HTTP transport for the read-only market-data endpoints.

Every attempt takes one permit from the client-level token bucket. Retries
(429, 5xx, transport errors) happen here and nowhere above this layer.
"""

from __future__ import annotations

import logging
import time

import httpx

from pipeline.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
_MAX_RETRIES = 3
_RETRY_BACKOFF_SEC = 0.5
_USER_AGENT = "negrisk-arb/0.1"


class ApiRequestFailed(Exception):
    """Raised when a request fails after all retries, or with a non-retryable status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status < 600


def _retry_after_sec(resp: httpx.Response) -> float:
    raw = resp.headers.get("Retry-After")
    if not raw:
        return 0.0
    try:
        return max(0.0, float(raw))
    except ValueError:
        return 0.0


class HttpClient:
    """
    Thin httpx wrapper: one shared connection pool, one limiter, bounded retries.
    Safe to share across worker threads.
    """

    def __init__(
        self,
        limiter: TokenBucket,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = _MAX_RETRIES,
        backoff_sec: float = _RETRY_BACKOFF_SEC,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._limiter = limiter
        self._max_retries = max_retries
        self._backoff_sec = backoff_sec
        self._http = httpx.Client(
            timeout=timeout,
            headers={"User-Agent": _USER_AGENT, "Accept": "application/json"},
            transport=transport,
        )

    def get_json(self, url: str, params: dict | None = None) -> dict | list:
        """GET a JSON document. Raises ApiRequestFailed when retries are exhausted."""
        last_error = ""
        last_status: int | None = None
        for attempt in range(self._max_retries + 1):
            self._limiter.acquire()
            wait = self._backoff_sec * (2 ** attempt)
            try:
                resp = self._http.get(url, params=params)
            except httpx.TransportError as exc:
                last_error, last_status = f"{type(exc).__name__}: {exc}", None
            else:
                if resp.is_success:
                    return resp.json()
                if not _is_retryable_status(resp.status_code):
                    raise ApiRequestFailed(
                        f"GET {url} failed: {resp.status_code} {resp.reason_phrase}",
                        status_code=resp.status_code,
                    )
                last_error, last_status = f"HTTP {resp.status_code}", resp.status_code
                wait = max(wait, _retry_after_sec(resp))

            if attempt == self._max_retries:
                break
            logger.debug(
                "HTTP retry %d/%d after %.1fs on %s: %s",
                attempt + 1, self._max_retries, wait, url, last_error,
            )
            time.sleep(wait)

        raise ApiRequestFailed(
            f"GET {url} failed after {self._max_retries + 1} attempts: {last_error}",
            status_code=last_status,
        )

    def close(self) -> None:
        self._http.close()
