"""Pytest fixtures for sync tests: in-memory stores and providers."""

from __future__ import annotations

import itertools
import json
from typing import Any, Optional

import pytest

from plugin_sync.enrichment import Enricher
from plugin_sync.fields import build_field_data, build_index_item
from plugin_sync.manifest import derive_slug
from plugin_sync.models import CatalogItem, Enrichment, IndexItem, ManifestEntry, RepoInfo
from plugin_sync.reconciler import Reconciler


class FakeContentStore:
    """Content store keyed by generated item id; records every call."""

    def __init__(self, items: Optional[list[CatalogItem]] = None):
        self.items: dict[str, CatalogItem] = {item.id: item for item in items or []}
        self.calls: list[tuple[str, Any]] = []
        self.fail_on: dict[str, Exception] = {}
        self._ids = itertools.count(1)

    def _maybe_fail(self, operation: str) -> None:
        error = self.fail_on.get(operation)
        if error is not None:
            raise error

    async def list_items(self) -> list[CatalogItem]:
        self._maybe_fail("list_items")
        return list(self.items.values())

    async def create_item(self, field_data: dict[str, Any]) -> CatalogItem:
        self.calls.append(("create_item", field_data.get("name")))
        self._maybe_fail("create_item")
        item = CatalogItem(id=f"item-{next(self._ids)}", field_data=dict(field_data))
        self.items[item.id] = item
        return item

    async def update_item(self, item_id: str, field_data: dict[str, Any]) -> CatalogItem:
        self.calls.append(("update_item", item_id))
        self._maybe_fail("update_item")
        item = CatalogItem(id=item_id, field_data=dict(field_data))
        self.items[item_id] = item
        return item

    async def delete_item(self, item_id: str) -> None:
        self.calls.append(("delete_item", item_id))
        self._maybe_fail("delete_item")
        self.items.pop(item_id, None)


class FakeIndexStore:
    """Search index keyed by objectID."""

    def __init__(self, items: Optional[list[IndexItem]] = None):
        self.items: dict[str, IndexItem] = {item.object_id: item for item in items or []}
        self.calls: list[tuple[str, Any]] = []
        self.fail_on: dict[str, Exception] = {}

    def _maybe_fail(self, operation: str) -> None:
        error = self.fail_on.get(operation)
        if error is not None:
            raise error

    async def list_items(self) -> list[IndexItem]:
        self._maybe_fail("list_items")
        return list(self.items.values())

    async def create_item(self, item: IndexItem) -> None:
        self.calls.append(("create_item", item.object_id))
        self._maybe_fail("create_item")
        self.items[item.object_id] = item

    async def update_item(self, item: IndexItem) -> None:
        self.calls.append(("update_item", item.object_id))
        self._maybe_fail("update_item")
        self.items[item.object_id] = item

    async def delete_item(self, object_id: str) -> None:
        self.calls.append(("delete_item", object_id))
        self._maybe_fail("delete_item")
        self.items.pop(object_id, None)


class FakeRepositories:
    """GitHub stand-in: per-repo info and README, keyed by repo name."""

    def __init__(self):
        self.info: dict[str, RepoInfo] = {}
        self.readmes: dict[str, str] = {}
        self.default_readme: Optional[str] = "<p>README</p>"
        self.errors: dict[str, Exception] = {}

    async def get_repo_info(self, owner: str, repo: str) -> Optional[RepoInfo]:
        if "repo_info" in self.errors:
            raise self.errors["repo_info"]
        return self.info.get(repo, RepoInfo(github_stars=10, author_name=owner))

    async def get_readme(self, owner: str, repo: str) -> Optional[str]:
        if "readme" in self.errors:
            raise self.errors["readme"]
        return self.readmes.get(repo, self.default_readme)


class FakeDownloads:
    def __init__(self, counts: Optional[dict[str, int]] = None):
        self.counts = counts or {}
        self.requested: list[str] = []
        self.error: Optional[Exception] = None

    async def get_downloads(self, package: str) -> Optional[int]:
        self.requested.append(package)
        if self.error is not None:
            raise self.error
        return self.counts.get(package)


async def no_sleep(seconds: float) -> None:
    return None


def make_entry(name: str, **kwargs: Any) -> ManifestEntry:
    data = {
        "name": name,
        "description": f"{name} description",
        "githubUrl": f"https://github.com/owner/{name}",
        "status": "active",
    }
    data.update(kwargs)
    return ManifestEntry.model_validate(data)


@pytest.fixture
def entry():
    """Factory for manifest entries with github.com/owner/<name> URLs."""
    return make_entry


@pytest.fixture
def seed(content_store, index_store):
    """Put an already-synced entry into both stores; returns its content item."""

    def _seed(
        manifest_entry: ManifestEntry,
        enrichment: Optional[Enrichment] = None,
        index: bool = True,
        **overrides: Any,
    ) -> CatalogItem:
        enrichment = enrichment or Enrichment(
            repo_info=RepoInfo(github_stars=10, author_name="owner"), content="<p>README</p>"
        )
        slug = derive_slug(manifest_entry.github_url)
        field_data = build_field_data(manifest_entry, slug, enrichment)
        field_data.update(overrides)
        item = CatalogItem(id=f"seed-{manifest_entry.name}", field_data=field_data)
        content_store.items[item.id] = item
        if index:
            obj = build_index_item(manifest_entry, slug, enrichment)
            index_store.items[obj.object_id] = obj
        return item

    return _seed


@pytest.fixture
def content_store():
    return FakeContentStore()


@pytest.fixture
def index_store():
    return FakeIndexStore()


@pytest.fixture
def repositories():
    return FakeRepositories()


@pytest.fixture
def downloads():
    return FakeDownloads()


@pytest.fixture
def make_reconciler(content_store, index_store, repositories, downloads):
    """Factory for a reconciler over the fake stores, with no batch delay."""

    def _make(**kwargs: Any) -> Reconciler:
        kwargs.setdefault("sleep", no_sleep)
        return Reconciler(content_store, index_store, Enricher(repositories, downloads), **kwargs)

    return _make


@pytest.fixture
def manifest_file(tmp_path):
    """Write a manifest list to plugins.json and return its path."""

    def _write(entries: Any):
        path = tmp_path / "plugins.json"
        path.write_text(json.dumps(entries), encoding="utf-8")
        return path

    return _write
