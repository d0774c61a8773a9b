"""Per-entry enrichment from GitHub and npm.

The three lookups run concurrently and are best-effort: a failure degrades to
its default (no repo info, 0 downloads, no content). Deciding what missing
content means is left to the reconciler.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from plugin_sync_common import get_logger

from plugin_sync.models import Enrichment, GitUrl, ManifestEntry, RepoInfo
from plugin_sync.stores import DownloadsProvider, RepositoryProvider

logger = get_logger(__name__)

SUPPORTED_HOSTS = frozenset({"github.com", "www.github.com"})


class Enricher:
    """Fans out repository, download and README lookups for one entry."""

    def __init__(
        self,
        repositories: RepositoryProvider,
        downloads: DownloadsProvider,
        supported_hosts: frozenset[str] = SUPPORTED_HOSTS,
    ):
        self.repositories = repositories
        self.downloads = downloads
        self.supported_hosts = supported_hosts

    async def enrich(self, entry: ManifestEntry, git_url: GitUrl) -> Enrichment:
        repo_info, npm_downloads, content = await asyncio.gather(
            self._repo_info(git_url),
            self._downloads(entry.name, git_url.name),
            self._readme(git_url),
        )
        return Enrichment(repo_info=repo_info, npm_downloads=npm_downloads, content=content)

    async def _repo_info(self, git_url: GitUrl) -> Optional[RepoInfo]:
        if git_url.source not in self.supported_hosts:
            logger.warning("unsupported_repository_host", source=git_url.source, repo=git_url.full_name)
            return None
        try:
            return await self.repositories.get_repo_info(git_url.owner, git_url.name)
        except Exception as e:
            logger.warning("repo_info_failed", repo=git_url.full_name, error=str(e))
            return None

    async def _downloads(self, package: str, repo_name: str) -> int:
        """Downloads for the package, falling back to the repository name."""
        candidates = [package] if package == repo_name else [package, repo_name]
        for candidate in candidates:
            try:
                downloads = await self.downloads.get_downloads(candidate)
            except Exception as e:
                logger.warning("npm_downloads_failed", package=candidate, error=str(e))
                return 0
            if downloads is not None:
                return downloads
        return 0

    async def _readme(self, git_url: GitUrl) -> Optional[str]:
        if git_url.source not in self.supported_hosts:
            return None
        try:
            return await self.repositories.get_readme(git_url.owner, git_url.name)
        except Exception as e:
            logger.warning("readme_fetch_failed", repo=git_url.full_name, error=str(e))
            return None
