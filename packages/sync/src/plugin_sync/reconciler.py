"""Reconcile the plugin manifest against the content store and search index.

Flow of a run:

1. List both stores (failures here abort the run).
2. Process manifest entries in batches: enrich, then create, update, skip or
   delete each entry's records. Every per-entry error is caught and recorded.
3. Sequentially delete orphans: records whose name is not in the manifest,
   duplicate content items, and index objects that no entry maps to.

Writes for one entry go content store first, then index. There is no rollback:
if the second write fails the entry is reported as failed and as a partial
write, leaving the stores inconsistent until the next run. That run sees a
current content record and rewrites the index object when it is missing or
differs on a compared field the index mirrors.

Example:
    >>> reconciler = Reconciler(webflow, algolia, Enricher(github, npm))
    >>> report = await reconciler.run(load_manifest("plugins.json"))
    >>> print(report.counts)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence

from plugin_sync_common import get_logger

from plugin_sync.enrichment import Enricher
from plugin_sync.fields import (
    DEFAULT_COMPARE_FIELDS,
    build_field_data,
    build_index_item,
    fields_differ,
    index_item_differs,
)
from plugin_sync.manifest import derive_slug, parse_git_url
from plugin_sync.metrics import RUN_DURATION, SYNC_ACTIONS
from plugin_sync.models import CatalogItem, IndexItem, ManifestEntry, PartialWrite, SyncReport
from plugin_sync.scheduler import DEFAULT_BATCH_DELAY, DEFAULT_BATCH_SIZE, run_in_batches
from plugin_sync.stores import ContentStore, SearchIndexStore

logger = get_logger(__name__)

NO_CONTENT_REASON = "No README content found"


@dataclass
class DualWriteResult:
    """Outcome of writing one entry to both stores."""

    content_written: bool = False
    index_written: bool = False
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.content_written and self.index_written

    @property
    def partial(self) -> bool:
        return self.content_written and not self.index_written


@dataclass
class _RunState:
    report: SyncReport
    catalog_items: list[CatalogItem]
    index_items: list[IndexItem]
    catalog_by_name: dict[str, CatalogItem] = field(default_factory=dict)
    duplicates: list[CatalogItem] = field(default_factory=list)
    index_by_id: dict[str, IndexItem] = field(default_factory=dict)
    deleted_index_ids: set[str] = field(default_factory=set)
    # Index ids of records whose content delete failed; retried next run
    kept_index_ids: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        for item in self.catalog_items:
            if item.name is None:
                continue
            if item.name in self.catalog_by_name:
                self.duplicates.append(item)
            else:
                self.catalog_by_name[item.name] = item
        self.index_by_id = {obj.object_id: obj for obj in self.index_items}


def _index_id(item: CatalogItem) -> Optional[str]:
    """Index object id for a content item: its slug, else derived from its URL."""
    if item.slug:
        return item.slug
    github = item.field_data.get("github")
    if github:
        try:
            return derive_slug(github)
        except ValueError:
            return None
    return None


def _expected_slugs(manifest: Iterable[ManifestEntry]) -> set[str]:
    slugs = set()
    for entry in manifest:
        try:
            slugs.add(derive_slug(entry.github_url))
        except ValueError:
            continue
    return slugs


class Reconciler:
    """Drives one sync run over both catalog stores."""

    def __init__(
        self,
        content_store: ContentStore,
        index_store: SearchIndexStore,
        enricher: Enricher,
        *,
        compare_fields: Sequence[str] = DEFAULT_COMPARE_FIELDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.content_store = content_store
        self.index_store = index_store
        self.enricher = enricher
        self.compare_fields = tuple(compare_fields)
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep

    async def run(self, manifest: Sequence[ManifestEntry]) -> SyncReport:
        """Reconcile both stores with the manifest and return the report."""
        started = time.monotonic()

        catalog_items = await self.content_store.list_items()
        index_items = await self.index_store.list_items()
        logger.info(
            "sync_started",
            manifest_entries=len(manifest),
            content_items=len(catalog_items),
            index_items=len(index_items),
        )

        state = _RunState(report=SyncReport(), catalog_items=catalog_items, index_items=index_items)

        stats = await run_in_batches(
            manifest,
            lambda entry: self.process_entry(entry, state),
            batch_size=self.batch_size,
            delay=self.batch_delay,
            sleep=self._sleep,
        )
        await self.delete_orphans(manifest, state)

        duration = time.monotonic() - started
        RUN_DURATION.observe(duration)
        logger.info(
            "sync_completed",
            batches=stats.batches,
            duration=f"{duration:.1f}s",
            **state.report.counts,
        )
        return state.report

    # -------------------------------------------------------------------------
    # Per-entry processing
    # -------------------------------------------------------------------------

    async def process_entry(self, entry: ManifestEntry, state: _RunState) -> None:
        """Create, update, skip or delete one entry. Never raises."""
        report = state.report
        name = entry.name
        try:
            existing = state.catalog_by_name.get(name)
            git_url = parse_git_url(entry.github_url)
            slug = derive_slug(entry.github_url)

            enrichment = await self.enricher.enrich(entry, git_url)

            if not enrichment.content:
                logger.warning("no_readme_content", name=name)
                self._fail(report, name, NO_CONTENT_REASON)
                # Already failed with the content reason; delete errors are only logged
                deleted = False
                if existing is not None:
                    deleted = await self._delete_record(existing, state, record=False)
                elif slug in state.index_by_id:
                    deleted = await self._delete_index_object(state.index_by_id[slug], state, record=False)
                if deleted:
                    self._record_deleted(report, name)
                return

            field_data = build_field_data(entry, slug, enrichment)
            index_item = build_index_item(entry, slug, enrichment)

            if existing is None:
                result = await self.write_both(
                    lambda: self.content_store.create_item(field_data),
                    lambda: self.index_store.create_item(index_item),
                )
                self._record_write(report, name, "create", result)
                return

            if fields_differ(field_data, existing.field_data, self.compare_fields):
                result = await self.write_both(
                    lambda: self.content_store.update_item(existing.id, field_data),
                    lambda: self.index_store.update_item(index_item),
                )
                self._record_write(report, name, "update", result)
                old_slug = _index_id(existing)
                if result.ok and old_slug and old_slug != slug and old_slug in state.index_by_id:
                    # Slug follows the repository URL; drop the object under the old id
                    await self._delete_index_object(state.index_by_id[old_slug], state, record=False)
                return

            if slug not in state.index_by_id:
                await self.index_store.create_item(index_item)
                report.updated.append(name)
                SYNC_ACTIONS.labels("updated").inc()
                logger.info("index_item_restored", name=name, slug=slug)
                return

            if index_item_differs(index_item, state.index_by_id[slug], self.compare_fields):
                # Content store is current but an earlier index write failed
                await self.index_store.update_item(index_item)
                report.updated.append(name)
                SYNC_ACTIONS.labels("updated").inc()
                logger.info("index_item_refreshed", name=name, slug=slug)
                return

            report.unchanged.append(name)
            SYNC_ACTIONS.labels("unchanged").inc()
            logger.debug("plugin_unchanged", name=name)

        except Exception as e:
            logger.error("plugin_failed", name=name, error=str(e))
            self._fail(report, name, str(e) or type(e).__name__)

    async def write_both(
        self,
        content_write: Callable[[], Awaitable[Any]],
        index_write: Callable[[], Awaitable[Any]],
    ) -> DualWriteResult:
        """Content store write, then index write. Stops at the first failure."""
        result = DualWriteResult()
        try:
            await content_write()
            result.content_written = True
            await index_write()
            result.index_written = True
        except Exception as e:
            result.error = e
        return result

    def _record_write(
        self, report: SyncReport, name: str, operation: str, result: DualWriteResult
    ) -> None:
        action = "created" if operation == "create" else "updated"
        if result.ok:
            getattr(report, action).append(name)
            SYNC_ACTIONS.labels(action).inc()
            logger.info(f"plugin_{action}", name=name)
            return

        if result.partial:
            reason = f"search index {operation} failed after content store succeeded: {result.error}"
            report.partial.append(
                PartialWrite(
                    name=name,
                    operation=operation,
                    content_written=result.content_written,
                    index_written=result.index_written,
                    error=str(result.error),
                )
            )
        else:
            reason = f"content store {operation} failed: {result.error}"
        logger.error(
            "plugin_write_failed",
            name=name,
            operation=operation,
            partial=result.partial,
            error=str(result.error),
        )
        self._fail(report, name, reason)

    @staticmethod
    def _fail(report: SyncReport, name: str, reason: str) -> None:
        report.add_failure(name, reason)
        SYNC_ACTIONS.labels("failed").inc()

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    async def delete_orphans(self, manifest: Sequence[ManifestEntry], state: _RunState) -> None:
        """Sequentially delete records with no manifest counterpart."""
        names = {entry.name for entry in manifest}
        slugs = _expected_slugs(manifest)

        for item in state.catalog_items:
            if item.name not in names:
                await self._delete_record(item, state)

        # Extra content items sharing a manifest name; the index object belongs to the kept one
        for item in state.duplicates:
            if item.name not in names:
                continue
            logger.warning("duplicate_content_item", name=item.name, item_id=item.id)
            await self._delete_record(item, state, delete_index=False, record=False)

        for obj in state.index_items:
            if obj.object_id in state.deleted_index_ids or obj.object_id in state.kept_index_ids:
                continue
            if obj.name not in names:
                await self._delete_index_object(obj, state)
            elif obj.object_id not in slugs:
                # Named entry still exists but no longer maps to this object id
                await self._delete_index_object(obj, state, record=False)

    async def _delete_record(
        self,
        item: CatalogItem,
        state: _RunState,
        delete_index: bool = True,
        record: bool = True,
    ) -> bool:
        """Delete a content item and its index object.

        Failures are logged and, for reported deletions, recorded as failed.
        Returns True when both deletes went through.
        """
        name = item.name or item.id
        index_id = _index_id(item) if delete_index else None
        try:
            await self.content_store.delete_item(item.id)
            if index_id and index_id not in state.deleted_index_ids:
                await self.index_store.delete_item(index_id)
                state.deleted_index_ids.add(index_id)
        except Exception as e:
            logger.error("plugin_delete_failed", name=name, item_id=item.id, error=str(e))
            if index_id:
                state.kept_index_ids.add(index_id)
            if record:
                self._fail(state.report, name, f"delete failed: {e}")
            return False

        if record:
            self._record_deleted(state.report, name)
        return True

    async def _delete_index_object(
        self, obj: IndexItem, state: _RunState, record: bool = True
    ) -> bool:
        name = obj.name or obj.object_id
        try:
            await self.index_store.delete_item(obj.object_id)
        except Exception as e:
            logger.error("index_delete_failed", name=name, object_id=obj.object_id, error=str(e))
            if record:
                self._fail(state.report, name, f"delete failed: {e}")
            return False
        state.deleted_index_ids.add(obj.object_id)
        if record:
            self._record_deleted(state.report, name)
        else:
            logger.info("stale_index_object_deleted", name=name, object_id=obj.object_id)
        return True

    @staticmethod
    def _record_deleted(report: SyncReport, name: str) -> None:
        if name in report.deleted:
            return
        report.deleted.append(name)
        SYNC_ACTIONS.labels("deleted").inc()
        logger.info("plugin_deleted", name=name)
