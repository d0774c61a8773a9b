"""Regenerate the plugin table in README.md from the manifest.

The table lives between markers:
  <!-- AUTO-GENERATED-CONTENT:START (GENERATE_SERVERLESS_PLUGIN_TABLE) -->
  ...
  <!-- AUTO-GENERATED-CONTENT:END -->
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from plugin_sync_common import ReadmeError, get_logger

from plugin_sync.manifest import format_title, parse_git_url, strip_common_part
from plugin_sync.models import ManifestEntry

logger = get_logger(__name__)

TABLE_TRANSFORM = "GENERATE_SERVERLESS_PLUGIN_TABLE"

_SECTION_RE = re.compile(
    r"(?P<start><!--\s*AUTO-GENERATED-CONTENT:START\s*\(\s*"
    + TABLE_TRANSFORM
    + r"[^)]*\)\s*-->)"
    r"(?P<body>.*?)"
    r"(?P<end><!--\s*AUTO-GENERATED-CONTENT:END\s*-->)",
    re.DOTALL,
)

_BADGE_STYLE = "labelColor=black&style=flat&logoWidth=8"


def _row(entry: ManifestEntry) -> str:
    git_url = parse_git_url(entry.github_url)
    owner, repo = git_url.owner, git_url.name
    repo_link = f"https://github.com/{owner}/{repo}"
    npm_link = f"https://www.npmjs.com/package/{entry.name}"

    stars = (
        f"[![GitHub Stars](https://img.shields.io/github/stars/{owner}/{repo}.svg"
        f"?label=Stars&{_BADGE_STYLE}&logo=github&link={repo_link})]({repo_link})"
    )
    downloads = (
        f"[![NPM Downloads](https://img.shields.io/npm/dt/{entry.name}.svg"
        f"?label=Downloads&{_BADGE_STYLE}&logo=npm&link={npm_link})]({npm_link})"
    )
    plugin = (
        f"**[{format_title(entry.name)} - `{entry.name.lower()}`]({entry.github_url})**"
        f" <br/> {entry.description}"
    )
    author = f"[{owner}](https://github.com/{owner})"
    return f"| {plugin} | {author} | {stars} <br/> {downloads} |"


def render_plugin_table(entries: Iterable[ManifestEntry]) -> str:
    """Markdown table of plugins sorted by name (``serverless`` prefix ignored)."""
    lines = [
        "| Plugin | Author | Stats |",
        "|:---------------------------|:-----------|:-------------------------:|",
    ]
    for entry in sorted(entries, key=lambda e: strip_common_part(e.name)):
        try:
            lines.append(_row(entry))
        except ValueError as e:
            logger.warning("readme_row_skipped", name=entry.name, error=str(e))
    return "\n".join(lines)


def replace_table(text: str, table: str) -> str:
    """Return text with the generated section replaced.

    Raises:
        ReadmeError: If the markers are not present
    """
    if not _SECTION_RE.search(text):
        raise ReadmeError(f"README has no {TABLE_TRANSFORM} section markers")
    return _SECTION_RE.sub(
        lambda m: f"{m.group('start')}\n{table}\n{m.group('end')}", text, count=1
    )


def update_readme(path: str | Path, entries: Iterable[ManifestEntry], check: bool = False) -> bool:
    """Regenerate the table in place.

    Args:
        path: README file
        entries: Manifest entries
        check: Only report staleness, do not write

    Returns:
        True if the file content differs (or, with check, would differ)
    """
    path = Path(path)
    try:
        current = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ReadmeError(f"Cannot read {path}: {e}")

    updated = replace_table(current, render_plugin_table(entries))
    changed = updated != current
    if changed and not check:
        path.write_text(updated, encoding="utf-8")
        logger.info("readme_updated", path=str(path))
    return changed
