"""npm registry download counts."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from plugin_sync_common import EnrichmentError

from plugin_sync.clients.base import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, BaseClient
from plugin_sync.rate_limiter import RateLimiter

NPM_API_URL = "https://api.npmjs.org"


class NpmClient(BaseClient):
    """Download statistics from api.npmjs.org."""

    service = "npm"
    error_cls = EnrichmentError

    def __init__(
        self,
        period: str = "last-month",
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff: float = 1.0,
        rate_limiter: Optional[RateLimiter] = None,
        base_url: str = NPM_API_URL,
    ):
        super().__init__(
            base_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
            max_attempts=max_attempts,
            retry_backoff=retry_backoff,
            rate_limiter=rate_limiter or RateLimiter(requests_per_second=5.0, burst_size=10),
        )
        self.period = period

    async def get_downloads(self, package: str) -> Optional[int]:
        """Downloads over ``period``, or None if the package is unknown."""
        response = await self._request(
            "GET",
            f"/downloads/point/{self.period}/{quote(package, safe='@/')}",
            operation="get_downloads",
            allow_not_found=True,
        )
        if response is None:
            return None
        return int(response.json().get("downloads") or 0)
