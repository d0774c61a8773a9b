"""Shared async HTTP plumbing for external service clients.

Each client owns one lazily created ``httpx.AsyncClient``. Requests go through
an optional token bucket and are retried with exponential backoff on 429, 5xx
and transport errors. A request that still fails is raised as the client's
``error_cls`` (a ``ClientError`` subclass).
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from plugin_sync_common import ClientError, get_logger

from plugin_sync.metrics import STORE_REQUESTS
from plugin_sync.rate_limiter import RateLimiter

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_ATTEMPTS = 3


def is_retryable(exc: BaseException) -> bool:
    """Rate limiting, server errors and transport failures are retried."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


def error_detail(response: httpx.Response) -> str:
    """Best human-readable error text from an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict):
        for key in ("message", "msg", "error"):
            if data.get(key):
                return str(data[key])
    return response.text[:200]


class BaseClient:
    """Async HTTP client with retries, rate limiting and error translation."""

    service = "http"
    error_cls: type[ClientError] = ClientError

    def __init__(
        self,
        base_url: str,
        headers: Optional[dict[str, str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff: float = 1.0,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Service root URL
            headers: Headers sent with every request
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per request, including the first
            retry_backoff: Backoff multiplier in seconds (0 disables waiting)
            rate_limiter: Optional token bucket shared by all requests
        """
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        self.rate_limiter = rate_limiter
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "http_retry",
            service=self.service,
            attempt=retry_state.attempt_number,
            error=str(exc),
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> Optional[httpx.Response]:
        """Send a request, retrying transient failures.

        Args:
            method: HTTP method
            path: Path relative to base_url
            operation: Metric label for the call (e.g. "create_item")
            allow_not_found: Return None on 404 instead of raising
            **kwargs: Passed to httpx (json, params, headers)

        Returns:
            The successful response, or None for an allowed 404

        Raises:
            ClientError: error_cls of this client, after retries are exhausted
        """
        client = await self._get_client()
        response: Optional[httpx.Response] = None
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.retry_backoff, min=0, max=30),
                retry=retry_if_exception(is_retryable),
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    if self.rate_limiter is not None:
                        await self.rate_limiter.acquire()
                    response = await client.request(method, path, **kwargs)
                    if not (allow_not_found and response.status_code == 404):
                        response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            STORE_REQUESTS.labels(self.service, operation, str(status)).inc()
            raise self.error_cls(status, error_detail(e.response), path) from e
        except httpx.TransportError as e:
            STORE_REQUESTS.labels(self.service, operation, "error").inc()
            raise self.error_cls(None, str(e) or type(e).__name__, path) from e

        assert response is not None
        STORE_REQUESTS.labels(self.service, operation, str(response.status_code)).inc()
        if response.status_code == 404:
            return None
        return response
