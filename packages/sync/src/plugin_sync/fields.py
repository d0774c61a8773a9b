"""Target field sets for both stores and change detection.

Which fields count as a change is an explicit, configurable tuple. The default
covers the manifest-sourced fields plus README content; repository stars and
npm downloads drift constantly and only trigger an update when
``STATS_FIELDS`` are added to the comparison.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from plugin_sync_common.config import DEFAULT_COMPARE_FIELDS

from plugin_sync.manifest import format_title
from plugin_sync.models import Enrichment, IndexItem, ManifestEntry

__all__ = [
    "DEFAULT_COMPARE_FIELDS",
    "STATS_FIELDS",
    "TRACKED_FIELDS",
    "build_field_data",
    "build_index_item",
    "fields_differ",
    "index_item_differs",
    "resolve_compare_fields",
]

STATS_FIELDS: tuple[str, ...] = ("github-stars", "npm-downloads")

# Content-store keys mirrored on index objects, mapped to IndexItem attributes
INDEX_MIRRORED_FIELDS: dict[str, str] = {
    "name": "name",
    "description": "description",
    "github": "github_url",
    "github-stars": "github_stars",
    "npm-downloads": "npm_downloads",
}

# Keys written to the content store; anything else in fieldData is store-managed
TRACKED_FIELDS: tuple[str, ...] = (
    "name",
    "title",
    "slug",
    "description",
    "github",
    "content",
    "npm-downloads",
    "github-stars",
    "author-link",
    "author-name",
    "author-avatar",
    "active",
)


def resolve_compare_fields(
    fields: Iterable[str] = DEFAULT_COMPARE_FIELDS, include_stats: bool = False
) -> tuple[str, ...]:
    """Validated comparison field tuple, optionally extended with stats.

    Raises:
        ValueError: If a field is not one of TRACKED_FIELDS
    """
    resolved = list(dict.fromkeys(fields))
    unknown = [f for f in resolved if f not in TRACKED_FIELDS]
    if unknown:
        raise ValueError(f"Unknown compare fields: {', '.join(unknown)}")
    if include_stats:
        resolved.extend(f for f in STATS_FIELDS if f not in resolved)
    return tuple(resolved)


def build_field_data(
    entry: ManifestEntry, slug: str, enrichment: Enrichment
) -> dict[str, Any]:
    """Content-store fieldData for an entry. Missing author fields are omitted."""
    repo = enrichment.repo_info
    field_data: dict[str, Any] = {
        "name": entry.name,
        "title": format_title(entry.name),
        "slug": slug,
        "description": entry.description,
        "github": entry.github_url,
        "content": enrichment.content,
        "npm-downloads": enrichment.npm_downloads or 0,
        "github-stars": repo.github_stars if repo else 0,
        "author-link": repo.author_link if repo else None,
        "author-name": repo.author_name if repo else None,
        "author-avatar": repo.author_avatar if repo else None,
        "active": entry.is_active,
    }
    return {k: v for k, v in field_data.items() if v is not None}


def build_index_item(entry: ManifestEntry, slug: str, enrichment: Enrichment) -> IndexItem:
    repo = enrichment.repo_info
    return IndexItem(
        object_id=slug,
        name=entry.name,
        description=entry.description,
        github_url=entry.github_url,
        npm_downloads=enrichment.npm_downloads or 0,
        github_stars=repo.github_stars if repo else 0,
        author_link=repo.author_link if repo else None,
        author_name=repo.author_name if repo else None,
        author_avatar=repo.author_avatar if repo else None,
    )


def fields_differ(
    target: Mapping[str, Any],
    stored: Mapping[str, Any],
    compare_fields: Iterable[str] = DEFAULT_COMPARE_FIELDS,
) -> bool:
    """True when any compared field differs between target and stored data.

    A field absent on one side and present on the other is a difference.
    ``active`` is compared as a boolean (stores may omit false switches).
    """
    for key in compare_fields:
        left, right = target.get(key), stored.get(key)
        if key == "active":
            left, right = bool(left), bool(right)
        if left != right:
            return True
    return False


def index_item_differs(
    target: IndexItem,
    stored: IndexItem,
    compare_fields: Iterable[str] = DEFAULT_COMPARE_FIELDS,
) -> bool:
    """True when a compared field that the index mirrors is stale on ``stored``."""
    for key in compare_fields:
        attr = INDEX_MIRRORED_FIELDS.get(key)
        if attr and getattr(target, attr) != getattr(stored, attr):
            return True
    return False
