"""Reconcile a plugin manifest with a Webflow catalog and an Algolia index."""

from plugin_sync.enrichment import Enricher
from plugin_sync.manifest import derive_slug, format_title, load_manifest, parse_git_url
from plugin_sync.models import (
    CatalogItem,
    Enrichment,
    FailedEntry,
    IndexItem,
    ManifestEntry,
    PartialWrite,
    RepoInfo,
    SyncReport,
)
from plugin_sync.reconciler import DualWriteResult, Reconciler
from plugin_sync.scheduler import BatchStats, run_in_batches

__all__ = [
    "BatchStats",
    "CatalogItem",
    "DualWriteResult",
    "Enricher",
    "Enrichment",
    "FailedEntry",
    "IndexItem",
    "ManifestEntry",
    "PartialWrite",
    "Reconciler",
    "RepoInfo",
    "SyncReport",
    "derive_slug",
    "format_title",
    "load_manifest",
    "parse_git_url",
    "run_in_batches",
]
