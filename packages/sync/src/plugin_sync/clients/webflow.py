"""Webflow CMS (Data API v2) client for the plugin collection."""

from __future__ import annotations

from typing import Any, Optional

from plugin_sync_common import StoreError, get_logger

from plugin_sync.clients.base import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, BaseClient
from plugin_sync.models import CatalogItem
from plugin_sync.rate_limiter import RateLimiter

logger = get_logger(__name__)

WEBFLOW_API_URL = "https://api.webflow.com/v2"
PAGE_LIMIT = 100


class WebflowClient(BaseClient):
    """Items of one Webflow CMS collection.

    With ``live=True`` creates and updates go through the ``/live`` endpoints
    so changes are published immediately, and deletes unpublish the item
    before removing it.

    Example:
        >>> async with WebflowClient(token, collection_id) as webflow:
        ...     items = await webflow.list_items()
    """

    service = "webflow"
    error_cls = StoreError

    def __init__(
        self,
        token: str,
        collection_id: str,
        live: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff: float = 1.0,
        rate_limiter: Optional[RateLimiter] = None,
        base_url: str = WEBFLOW_API_URL,
    ):
        super().__init__(
            base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            max_attempts=max_attempts,
            retry_backoff=retry_backoff,
            # 60 requests/minute on the default plan
            rate_limiter=rate_limiter or RateLimiter(requests_per_second=1.0, burst_size=10),
        )
        self.collection_id = collection_id
        self.live = live

    @property
    def _items_path(self) -> str:
        return f"/collections/{self.collection_id}/items"

    def _write_path(self, item_id: Optional[str] = None) -> str:
        path = self._items_path if item_id is None else f"{self._items_path}/{item_id}"
        return f"{path}/live" if self.live else path

    async def list_items(self) -> list[CatalogItem]:
        """List every item in the collection (all pages)."""
        items: list[CatalogItem] = []
        offset = 0
        while True:
            response = await self._request(
                "GET",
                self._items_path,
                operation="list_items",
                params={"offset": offset, "limit": PAGE_LIMIT},
            )
            data = response.json()
            page = data.get("items") or []
            items.extend(CatalogItem.model_validate(item) for item in page)

            total = (data.get("pagination") or {}).get("total", 0)
            offset += len(page)
            if not page or offset >= total:
                break

        logger.debug("webflow_items_listed", collection_id=self.collection_id, count=len(items))
        return items

    async def create_item(self, field_data: dict[str, Any]) -> CatalogItem:
        payload = {"isArchived": False, "isDraft": False, "fieldData": field_data}
        response = await self._request(
            "POST", self._write_path(), operation="create_item", json=payload
        )
        return CatalogItem.model_validate(response.json())

    async def update_item(self, item_id: str, field_data: dict[str, Any]) -> CatalogItem:
        payload = {"isArchived": False, "isDraft": False, "fieldData": field_data}
        response = await self._request(
            "PATCH", self._write_path(item_id), operation="update_item", json=payload
        )
        return CatalogItem.model_validate(response.json())

    async def delete_item(self, item_id: str) -> None:
        """Delete an item; already-missing items are not an error."""
        if self.live:
            await self._request(
                "DELETE",
                self._write_path(item_id),
                operation="unpublish_item",
                allow_not_found=True,
            )
        await self._request(
            "DELETE",
            f"{self._items_path}/{item_id}",
            operation="delete_item",
            allow_not_found=True,
        )
