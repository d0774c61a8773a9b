"""Algolia search index client (REST API v1)."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from plugin_sync_common import StoreError, get_logger

from plugin_sync.clients.base import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, BaseClient
from plugin_sync.models import IndexItem
from plugin_sync.rate_limiter import RateLimiter

logger = get_logger(__name__)

BROWSE_HITS_PER_PAGE = 1000


class AlgoliaClient(BaseClient):
    """Objects of one Algolia index, keyed by ``objectID`` (the plugin slug)."""

    service = "algolia"
    error_cls = StoreError

    def __init__(
        self,
        app_id: str,
        api_key: str,
        index_name: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff: float = 1.0,
        rate_limiter: Optional[RateLimiter] = None,
        base_url: Optional[str] = None,
    ):
        super().__init__(
            base_url or f"https://{app_id}.algolia.net",
            headers={
                "X-Algolia-Application-Id": app_id,
                "X-Algolia-API-Key": api_key,
                "Accept": "application/json",
            },
            timeout=timeout,
            max_attempts=max_attempts,
            retry_backoff=retry_backoff,
            rate_limiter=rate_limiter,
        )
        self.index_name = index_name

    @property
    def _index_path(self) -> str:
        return f"/1/indexes/{quote(self.index_name, safe='')}"

    def _object_path(self, object_id: str) -> str:
        return f"{self._index_path}/{quote(object_id, safe='')}"

    async def list_items(self) -> list[IndexItem]:
        """Browse the whole index, following cursors."""
        items: list[IndexItem] = []
        body: dict[str, Any] = {"hitsPerPage": BROWSE_HITS_PER_PAGE}
        while True:
            response = await self._request(
                "POST", f"{self._index_path}/browse", operation="list_items", json=body
            )
            data = response.json()
            items.extend(IndexItem.model_validate(hit) for hit in data.get("hits") or [])
            cursor = data.get("cursor")
            if not cursor:
                break
            body = {"cursor": cursor}

        logger.debug("algolia_items_listed", index=self.index_name, count=len(items))
        return items

    async def create_item(self, item: IndexItem) -> None:
        """Add or replace the object."""
        await self._request(
            "PUT",
            self._object_path(item.object_id),
            operation="create_item",
            json=item.to_payload(),
        )

    async def update_item(self, item: IndexItem) -> None:
        """Partially update the object (created if missing)."""
        await self._request(
            "POST",
            f"{self._object_path(item.object_id)}/partial",
            operation="update_item",
            json=item.to_payload(),
        )

    async def delete_item(self, object_id: str) -> None:
        await self._request(
            "DELETE",
            self._object_path(object_id),
            operation="delete_item",
            allow_not_found=True,
        )
