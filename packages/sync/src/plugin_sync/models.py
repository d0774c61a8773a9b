"""Data models for manifest entries, catalog records and run reports.

Manifest and provider payloads are pydantic models (camelCase aliases match the
JSON on the wire). The run report is a plain dataclass owned by a single
reconciler run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

ACTIVE_STATUS = "active"


class ManifestEntry(BaseModel):
    """One plugin in the manifest (read-only for a run)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, description="Unique key, usually the npm package name")
    description: str = Field(default="")
    github_url: str = Field(alias="githubUrl", min_length=1)
    status: Optional[str] = Field(default=None, description="e.g. active, inactive, deprecated")

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE_STATUS


class GitUrl(BaseModel):
    """Parsed repository URL."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(description="Host, e.g. github.com")
    owner: str
    name: str = Field(description="Repository name without .git")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class RepoInfo(BaseModel):
    """Repository statistics and author identity from GitHub."""

    model_config = ConfigDict(populate_by_name=True)

    github_stars: int = Field(default=0, alias="githubStars", ge=0)
    author_name: Optional[str] = Field(default=None, alias="authorName")
    author_link: Optional[str] = Field(default=None, alias="authorLink")
    author_avatar: Optional[str] = Field(default=None, alias="authorAvatar")


class CatalogItem(BaseModel):
    """Item in the Webflow CMS collection.

    ``field_data`` keeps every key the store returns; only the tracked fields
    take part in change detection.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    field_data: dict[str, Any] = Field(default_factory=dict, alias="fieldData")

    @property
    def name(self) -> Optional[str]:
        return self.field_data.get("name")

    @property
    def slug(self) -> Optional[str]:
        return self.field_data.get("slug")


class IndexItem(BaseModel):
    """Object in the Algolia index."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    object_id: str = Field(alias="objectID")
    name: Optional[str] = None
    description: Optional[str] = None
    github_url: Optional[str] = Field(default=None, alias="githubUrl")
    npm_downloads: int = Field(default=0, alias="npmDownloads")
    github_stars: int = Field(default=0, alias="githubStars")
    author_link: Optional[str] = Field(default=None, alias="authorLink")
    author_name: Optional[str] = Field(default=None, alias="authorName")
    author_avatar: Optional[str] = Field(default=None, alias="authorAvatar")

    def to_payload(self) -> dict[str, Any]:
        """JSON body for the index API (camelCase, unset author fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass
class Enrichment:
    """Best-effort data fetched for one manifest entry."""

    repo_info: Optional[RepoInfo] = None
    npm_downloads: int = 0
    content: Optional[str] = None


@dataclass
class FailedEntry:
    name: str
    reason: str


@dataclass
class PartialWrite:
    """A dual-store write where the content store and index disagree."""

    name: str
    operation: str
    content_written: bool
    index_written: bool
    error: str


@dataclass
class SyncReport:
    """Outcome of one reconciliation run.

    Lists keep the order in which entries settled.
    """

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    failed: list[FailedEntry] = field(default_factory=list)
    partial: list[PartialWrite] = field(default_factory=list)

    def add_failure(self, name: str, reason: str) -> None:
        self.failed.append(FailedEntry(name=name, reason=reason))

    @property
    def counts(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
            "failed": len(self.failed),
        }

    @property
    def has_changes(self) -> bool:
        return bool(self.created or self.updated or self.deleted)
