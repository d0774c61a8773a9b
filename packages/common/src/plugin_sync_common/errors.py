"""Custom error types for plugin-sync.

Orchestration-level errors (configuration, manifest, catalog listing) are
raised and left to propagate to the CLI. Per-entry errors are caught by the
reconciler and turned into report entries.
"""


class PluginSyncError(Exception):
    """Base exception for all plugin-sync errors."""

    pass


class ConfigError(PluginSyncError):
    """Required configuration is missing or invalid."""

    pass


class ManifestError(PluginSyncError):
    """Manifest file could not be read or failed validation."""

    pass


class ClientError(PluginSyncError):
    """HTTP call to an external service failed after retries.

    Attributes:
        status_code: HTTP status code, or None for transport failures
        message: Error detail returned by the service (or transport error text)
        endpoint: Request path that failed
    """

    def __init__(self, status_code: int | None, message: str, endpoint: str = ""):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        status = status_code if status_code is not None else "transport"
        super().__init__(f"[{status}] {endpoint}: {message}")


class StoreError(ClientError):
    """Error reading or writing a catalog store (Webflow, Algolia)."""

    pass


class EnrichmentError(ClientError):
    """Error calling an enrichment provider (GitHub, npm)."""

    pass


class ReadmeError(PluginSyncError):
    """README could not be regenerated (file or markers missing)."""

    pass
