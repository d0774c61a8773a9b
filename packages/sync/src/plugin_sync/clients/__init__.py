"""HTTP clients for the catalog stores and enrichment providers."""

from plugin_sync.clients.algolia import AlgoliaClient
from plugin_sync.clients.base import BaseClient
from plugin_sync.clients.github import GitHubClient
from plugin_sync.clients.npm import NpmClient
from plugin_sync.clients.webflow import WebflowClient

__all__ = [
    "AlgoliaClient",
    "BaseClient",
    "GitHubClient",
    "NpmClient",
    "WebflowClient",
]
