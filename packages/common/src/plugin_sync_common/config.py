"""Configuration management for plugin-sync.

Settings are read from environment variables (case-insensitive) and an
optional ``.env`` file. Store credentials are optional at load time so that
commands which never touch the catalogs (``plugin-sync readme``) can run
without them; ``require_store_credentials`` enforces them before a sync.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from plugin_sync_common.errors import ConfigError

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_LOG_FORMATS = {"console", "json"}

DEFAULT_COMPARE_FIELDS: tuple[str, ...] = ("name", "description", "github", "active", "content")

# Env var names for store access, keyed by settings field
_STORE_CREDENTIALS = {
    "webflow_token": "WEBFLOW_SYNC_AND_PUBLISH_TOKEN",
    "webflow_collection_id": "WEBFLOW_PLUGINS_COLLECTION_ID",
    "algolia_app_id": "ALGOLIA_APP_ID",
    "algolia_api_key": "ALGOLIA_API_KEY",
    "algolia_index": "ALGOLIA_PLUGINS_INDEX",
}


class Settings(BaseSettings):
    """Runtime settings for a sync run."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Content store (Webflow CMS)
    webflow_token: Optional[str] = Field(
        default=None, validation_alias="WEBFLOW_SYNC_AND_PUBLISH_TOKEN"
    )
    webflow_collection_id: Optional[str] = Field(
        default=None, validation_alias="WEBFLOW_PLUGINS_COLLECTION_ID"
    )
    webflow_live: bool = True

    # Search index (Algolia)
    algolia_app_id: Optional[str] = None
    algolia_api_key: Optional[str] = None
    algolia_index: Optional[str] = Field(default=None, validation_alias="ALGOLIA_PLUGINS_INDEX")

    # GitHub (enrichment and PR comments)
    github_token: Optional[str] = None
    github_event_name: Optional[str] = None
    github_event_path: Optional[str] = None
    github_repository: Optional[str] = None
    github_ref: Optional[str] = None

    # Run behaviour
    manifest_path: str = "plugins.json"
    batch_size: int = Field(default=5, ge=1)
    batch_delay: float = Field(default=2.0, ge=0)
    compare_fields: list[str] = Field(default_factory=lambda: list(DEFAULT_COMPARE_FIELDS))
    compare_stats: bool = False
    npm_period: str = "last-month"
    http_timeout: float = Field(default=30.0, gt=0)
    http_max_attempts: int = Field(default=3, ge=1)
    metrics_textfile: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(VALID_LOG_LEVELS)}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in VALID_LOG_FORMATS:
            raise ValueError(f"log_format must be one of {sorted(VALID_LOG_FORMATS)}")
        return lower

    @property
    def is_pull_request(self) -> bool:
        """True when the run was triggered by a pull request event."""
        return self.github_event_name == "pull_request"

    def require_store_credentials(self) -> None:
        """Raise ConfigError naming every missing catalog store variable."""
        missing = [env for field, env in _STORE_CREDENTIALS.items() if not getattr(self, field)]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached; call cache_clear() to reload)."""
    return Settings()
