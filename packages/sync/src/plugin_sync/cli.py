"""plugin-sync CLI - main entry point.

Usage:
    plugin-sync sync --manifest plugins.json
    plugin-sync sync --compare-stats --readme README.md
    plugin-sync readme --check

Store credentials and run context come from the environment (see
plugin_sync_common.config.Settings).
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from plugin_sync_common import PluginSyncError, configure_logging, get_logger, get_settings

from plugin_sync.manifest import load_manifest
from plugin_sync.readme import update_readme
from plugin_sync.report import render_console
from plugin_sync.runner import run_sync

logger = get_logger(__name__)

app = typer.Typer(
    name="plugin-sync",
    help="Sync the plugin manifest to the Webflow catalog and Algolia index.",
    add_completion=False,
)


@app.command(name="sync")
def sync_command(
    manifest: Optional[Path] = typer.Option(
        None,
        "--manifest",
        "-m",
        help="Manifest JSON file (default: MANIFEST_PATH or plugins.json)",
    ),
    batch_size: Optional[int] = typer.Option(
        None,
        "--batch-size",
        min=1,
        help="Entries processed concurrently per batch (default: BATCH_SIZE or 5)",
    ),
    batch_delay: Optional[float] = typer.Option(
        None,
        "--batch-delay",
        min=0,
        help="Seconds to wait between batches (default: BATCH_DELAY or 2)",
    ),
    compare_stats: bool = typer.Option(
        False,
        "--compare-stats",
        help="Treat star and download changes as updates",
    ),
    readme: Optional[Path] = typer.Option(
        None,
        "--readme",
        help="Regenerate the plugin table in this README after syncing",
    ),
):
    """Reconcile both catalog stores with the manifest.

    Exits 0 when the run completes, even if individual plugins failed
    (they are listed in the summary). Exits 1 when the run itself fails.
    """
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    overrides: dict = {}
    if batch_size is not None:
        overrides["batch_size"] = batch_size
    if batch_delay is not None:
        overrides["batch_delay"] = batch_delay
    if compare_stats:
        overrides["compare_stats"] = True
    if overrides:
        settings = settings.model_copy(update=overrides)

    try:
        report = asyncio.run(run_sync(settings, manifest, readme))
    except Exception as e:
        logger.error("sync_failed", error=str(e), error_type=type(e).__name__, exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(render_console(report))


@app.command(name="readme")
def readme_command(
    manifest: Optional[Path] = typer.Option(None, "--manifest", "-m", help="Manifest JSON file"),
    readme: Path = typer.Option(Path("README.md"), "--readme", help="README to update"),
    check: bool = typer.Option(False, "--check", help="Exit 1 if the table is stale, do not write"),
):
    """Regenerate the README plugin table from the manifest."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    try:
        entries = load_manifest(manifest or Path(settings.manifest_path))
        changed = update_readme(readme, entries, check=check)
    except PluginSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if check and changed:
        typer.echo(f"{readme} plugin table is out of date", err=True)
        raise typer.Exit(1)
    typer.echo(f"{readme} updated" if changed else f"{readme} is up to date")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
