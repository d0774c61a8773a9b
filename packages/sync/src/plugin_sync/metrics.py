"""Prometheus metrics for sync runs.

A run is a short-lived batch job, so nothing is scraped. When
``METRICS_TEXTFILE`` is set the default registry is written to that path at
the end of the run for the node-exporter textfile collector.
"""

from __future__ import annotations

from pathlib import Path

from prometheus_client import REGISTRY, Counter, Histogram, write_to_textfile

# ==============================================================================
# Reconciliation outcomes
# ==============================================================================

SYNC_ACTIONS = Counter(
    "plugin_sync_actions_total",
    "Reconciliation outcomes per manifest or catalog entry",
    ["action"],  # created, updated, deleted, unchanged, failed
)

# ==============================================================================
# External calls
# ==============================================================================

STORE_REQUESTS = Counter(
    "plugin_sync_store_requests_total",
    "HTTP requests to external services",
    ["service", "operation", "status"],
)

# ==============================================================================
# Durations
# ==============================================================================

BATCH_DURATION = Histogram(
    "plugin_sync_batch_duration_seconds",
    "Time for one batch of entries to settle",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
)

RUN_DURATION = Histogram(
    "plugin_sync_run_duration_seconds",
    "Duration of a full reconciliation run",
    buckets=[10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1200.0, 1800.0],
)


def write_metrics(path: str | Path) -> None:
    """Write the default registry in Prometheus text format."""
    write_to_textfile(str(path), REGISTRY)
