"""Interfaces the reconciler depends on.

The HTTP clients in ``plugin_sync.clients`` satisfy these; tests use
in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from plugin_sync.models import CatalogItem, IndexItem, RepoInfo


class ContentStore(Protocol):
    """Content collection keyed by store-assigned item id."""

    async def list_items(self) -> list[CatalogItem]: ...

    async def create_item(self, field_data: dict[str, Any]) -> CatalogItem: ...

    async def update_item(self, item_id: str, field_data: dict[str, Any]) -> CatalogItem: ...

    async def delete_item(self, item_id: str) -> None: ...


class SearchIndexStore(Protocol):
    """Search index keyed by object id (the plugin slug)."""

    async def list_items(self) -> list[IndexItem]: ...

    async def create_item(self, item: IndexItem) -> None: ...

    async def update_item(self, item: IndexItem) -> None: ...

    async def delete_item(self, object_id: str) -> None: ...


class RepositoryProvider(Protocol):
    async def get_repo_info(self, owner: str, repo: str) -> Optional[RepoInfo]: ...

    async def get_readme(self, owner: str, repo: str) -> Optional[str]: ...


class DownloadsProvider(Protocol):
    async def get_downloads(self, package: str) -> Optional[int]: ...
