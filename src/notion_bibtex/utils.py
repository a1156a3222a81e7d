"""Shared utilities for the Notion BibTeX processor.

Includes small text helpers, the BibTeX author splitter, and the HTTP
infrastructure (per-service rate limiting and retries) used by the arXiv
and Notion clients.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any

import httpx

# ------------- Constants -------------

ARXIV_API = "http://export.arxiv.org/api/query"
NOTION_API = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

USER_AGENT = "notion-bibtex/0.3"

# Author separator; the first revisions split on the literal " and ".
AUTHOR_SEPARATOR_RE = re.compile(r"\s+and\s+")

logger = logging.getLogger(__name__)


# ------------- Text Helpers -------------


def safe_strip(x: Any) -> str:
    """Null-safe conversion to a stripped string."""
    if x is None:
        return ""
    return str(x).strip()


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace (including newlines) into single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()


def split_authors_bibtex(author_field: str) -> list[str]:
    """Split BibTeX 'A and B and C' author string into individual names."""
    if not author_field:
        return []
    return [p.strip() for p in AUTHOR_SEPARATOR_RE.split(author_field.strip()) if p.strip()]


# ------------- Rate Limiting -------------


class RateLimiter:
    """Thread-safe rate limiter for API requests."""

    def __init__(self, req_per_min: int) -> None:
        self.req_per_min = max(req_per_min, 1)
        self.lock = threading.Lock()
        self.timestamps: list[float] = []

    def wait(self) -> None:
        """Block until a request can be made within the rate limit."""
        with self.lock:
            now = time.time()
            window = 60.0
            self.timestamps = [t for t in self.timestamps if now - t < window]
            if len(self.timestamps) >= self.req_per_min:
                earliest = min(self.timestamps)
                sleep_for = window - (now - earliest) + 0.01
                if sleep_for > 0:
                    time.sleep(sleep_for)
                    now = time.time()
                    self.timestamps = [t for t in self.timestamps if now - t < window]
            self.timestamps.append(time.time())


class RateLimiterRegistry:
    """Manages per-service rate limiters."""

    DEFAULT_LIMITS = {
        "arxiv": 30,  # arXiv asks for at most one request every ~3 seconds
        "notion": 180,  # Notion: average of 3 requests/second
    }

    def __init__(self, limits: dict[str, int] | None = None) -> None:
        self._limits = {**self.DEFAULT_LIMITS, **(limits or {})}
        self._limiters: dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def get(self, service: str) -> RateLimiter:
        """Get or create the rate limiter for a service."""
        with self._lock:
            if service not in self._limiters:
                self._limiters[service] = RateLimiter(self._limits.get(service, 30))
            return self._limiters[service]

    def wait(self, service: str) -> None:
        self.get(service).wait()


# ------------- HTTP Client -------------


class HttpClient:
    """HTTP client with rate limiting and retry logic.

    Only transient failures (transport errors and the statuses in
    ``RETRYABLE_STATUS``) are retried. Any other response is returned to the
    caller, which decides how to treat non-2xx statuses.
    """

    RETRYABLE_STATUS = {429, 500, 502, 503, 504}

    def __init__(
        self,
        timeout: float,
        user_agent: str = USER_AGENT,
        rate_limiter: RateLimiter | RateLimiterRegistry | None = None,
        headers: dict[str, str] | None = None,
        max_attempts: int = 4,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
            rate_limiter: A single RateLimiter or a RateLimiterRegistry for
                per-service limits; None disables rate limiting
            headers: Extra default headers sent with every request
            max_attempts: Total attempts per request (1 disables retries)
            transport: Optional httpx transport (used by tests)
        """
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent, **(headers or {})},
            follow_redirects=True,
            transport=transport,
        )
        self._rate_limiter = rate_limiter
        self.max_attempts = max(max_attempts, 1)

    def _wait(self, service: str | None) -> None:
        if self._rate_limiter is None:
            return
        if isinstance(self._rate_limiter, RateLimiterRegistry):
            self._rate_limiter.wait(service or "default")
        else:
            self._rate_limiter.wait()

    def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        accept: str | None = None,
        json_body: dict[str, Any] | list[Any] | None = None,
        service: str | None = None,
    ) -> httpx.Response:
        """Make an HTTP request with retries.

        Args:
            method: HTTP method (GET, POST, PATCH, ...)
            url: Request URL
            params: Query parameters
            accept: Accept header value
            json_body: JSON body for POST/PATCH requests
            service: Optional service name for per-service rate limiting

        Raises:
            RuntimeError: If every attempt failed with a transient error
        """
        backoff = 1.0
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            self._wait(service)
            try:
                headers = {"Accept": accept} if accept else {}
                resp = self.client.request(method, url, params=params, headers=headers, json=json_body)
                if resp.status_code in self.RETRYABLE_STATUS:
                    raise httpx.HTTPStatusError("Retryable status", request=resp.request, response=resp)
                return resp
            except httpx.HTTPError as e:
                last_error = e
                logger.debug("%s %s failed (attempt %d/%d): %s", method, url, attempt, self.max_attempts, e)
                if attempt < self.max_attempts:
                    time.sleep(backoff)
                    backoff = min(backoff * 2, 16.0)
        raise RuntimeError(f"Network failure after {self.max_attempts} attempt(s) for {url}: {last_error}")

    def close(self) -> None:
        self.client.close()
