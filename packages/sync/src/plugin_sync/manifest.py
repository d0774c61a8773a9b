"""Manifest loading and repository URL helpers."""

from __future__ import annotations

import json
import re
from pathlib import Path
from urllib.parse import urlparse

from pydantic import TypeAdapter, ValidationError

from plugin_sync_common import ManifestError, get_logger

from plugin_sync.models import GitUrl, ManifestEntry

logger = get_logger(__name__)

_SCP_URL_RE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*)$")

# First "serverless-plugin" or "serverless" token, with one adjoining dash
COMMON_PART_RE = re.compile(
    r"(?:(?:^|-)serverless-plugin(?:-|$))|(?:(?:^|-)serverless(?:-|$))"
)

_entries_adapter = TypeAdapter(list[ManifestEntry])


def load_manifest(path: str | Path) -> list[ManifestEntry]:
    """Load and validate the plugin manifest.

    Args:
        path: Path to a JSON file holding a list of plugin objects

    Returns:
        Entries in file order

    Raises:
        ManifestError: If the file is unreadable, not a JSON list, has invalid
            entries, or repeats a name
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ManifestError(f"Manifest not found: {path}")
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}")

    if not isinstance(raw, list):
        raise ManifestError(f"Manifest {path} must contain a JSON list")

    try:
        entries = _entries_adapter.validate_python(raw)
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest {path}: {e}")

    seen: set[str] = set()
    duplicates: list[str] = []
    for entry in entries:
        if entry.name in seen:
            duplicates.append(entry.name)
        seen.add(entry.name)
    if duplicates:
        raise ManifestError(f"Duplicate plugin names in manifest: {', '.join(sorted(set(duplicates)))}")

    logger.info("manifest_loaded", path=str(path), entries=len(entries))
    return entries


def parse_git_url(url: str) -> GitUrl:
    """Split a repository URL into host, owner and repository name.

    Accepts ``https://host/owner/repo``, ``git@host:owner/repo.git`` and
    ``host/owner/repo``. Path segments after the repository are ignored.

    Raises:
        ValueError: If owner or repository cannot be determined
    """
    url = url.strip()
    scp = _SCP_URL_RE.match(url) if "://" not in url else None
    if scp:
        host, path = scp.group("host"), scp.group("path")
    else:
        parsed = urlparse(url if "://" in url else f"https://{url}")
        host, path = parsed.hostname or "", parsed.path

    segments = [s for s in path.split("/") if s]
    if not host or len(segments) < 2:
        raise ValueError(f"Not a repository URL: {url!r}")

    owner, name = segments[0], segments[1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return GitUrl(source=host.lower(), owner=owner, name=name)


def derive_slug(url: str) -> str:
    """Slug shared by both stores: the URL's last path segment."""
    slug = url.strip().rstrip("/").rsplit("/", 1)[-1]
    if slug.endswith(".git"):
        slug = slug[: -len(".git")]
    if not slug:
        raise ValueError(f"Cannot derive slug from {url!r}")
    return slug


def _title_case(text: str) -> str:
    return re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text)


def strip_common_part(name: str) -> str:
    return COMMON_PART_RE.sub("", name.lower(), count=1)


def format_title(name: str) -> str:
    """Human title for a plugin name.

    >>> format_title("serverless-offline-sqs")
    'Offline Sqs'
    """
    return _title_case(strip_common_part(name).replace("-", " "))
