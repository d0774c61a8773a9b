"""Wire settings, clients and the reconciler into one sync run."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from plugin_sync_common import PluginSyncError, Settings, get_logger

from plugin_sync.clients import AlgoliaClient, GitHubClient, NpmClient, WebflowClient
from plugin_sync.enrichment import Enricher
from plugin_sync.fields import resolve_compare_fields
from plugin_sync.manifest import load_manifest
from plugin_sync.metrics import write_metrics
from plugin_sync.models import SyncReport
from plugin_sync.readme import update_readme
from plugin_sync.reconciler import Reconciler
from plugin_sync.report import CommentPublisher, render_summary, resolve_pr_number

logger = get_logger(__name__)


async def publish_summary(github: GitHubClient, settings: Settings, report: SyncReport) -> bool:
    """Post the run summary on the triggering pull request.

    Returns:
        True if a comment was created or updated. Failures are logged only.
    """
    pr_number = resolve_pr_number(settings)
    if not settings.github_repository or pr_number is None:
        logger.warning(
            "summary_comment_skipped",
            reason="pull request not resolvable",
            repository=settings.github_repository,
        )
        return False

    publisher = CommentPublisher(github, settings.github_repository, pr_number)
    try:
        await publisher.publish(render_summary(report))
    except PluginSyncError as e:
        logger.error("summary_comment_failed", pr=pr_number, error=str(e))
        return False
    return True


async def run_sync(
    settings: Settings,
    manifest_path: Optional[Path] = None,
    readme_path: Optional[Path] = None,
) -> SyncReport:
    """Run a full reconciliation.

    Raises:
        ConfigError: Store credentials missing
        ManifestError: Manifest unreadable or invalid
        StoreError: A catalog store could not be listed
    """
    settings.require_store_credentials()
    manifest = load_manifest(manifest_path or Path(settings.manifest_path))
    compare_fields = resolve_compare_fields(settings.compare_fields, settings.compare_stats)

    http_options = {"timeout": settings.http_timeout, "max_attempts": settings.http_max_attempts}
    async with (
        WebflowClient(
            settings.webflow_token,
            settings.webflow_collection_id,
            live=settings.webflow_live,
            **http_options,
        ) as webflow,
        AlgoliaClient(
            settings.algolia_app_id,
            settings.algolia_api_key,
            settings.algolia_index,
            **http_options,
        ) as algolia,
        GitHubClient(settings.github_token, **http_options) as github,
        NpmClient(settings.npm_period, **http_options) as npm,
    ):
        reconciler = Reconciler(
            webflow,
            algolia,
            Enricher(github, npm),
            compare_fields=compare_fields,
            batch_size=settings.batch_size,
            batch_delay=settings.batch_delay,
        )
        report = await reconciler.run(manifest)

        if settings.is_pull_request:
            await publish_summary(github, settings, report)

    if readme_path is not None:
        update_readme(readme_path, manifest)

    if settings.metrics_textfile:
        write_metrics(settings.metrics_textfile)

    return report
