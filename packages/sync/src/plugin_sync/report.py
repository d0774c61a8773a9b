"""Run summary rendering and pull request comment publishing.

A prior summary comment is recognised by its first line: a comment whose body
starts with ``SUMMARY_MARKER`` (leading whitespace ignored) is replaced in
place. Comments that only mention the marker further down are left alone.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Optional

from plugin_sync_common import Settings, get_logger

from plugin_sync.clients.github import GitHubClient
from plugin_sync.models import SyncReport

logger = get_logger(__name__)

SUMMARY_MARKER = "## Plugin Sync Summary"

_PR_REF_RE = re.compile(r"^refs/pull/(\d+)/")


def render_summary(report: SyncReport) -> str:
    """Markdown summary for a pull request comment."""
    counts = report.counts
    lines = [
        SUMMARY_MARKER,
        "",
        "| Created | Updated | Deleted | Failed |",
        "|:---:|:---:|:---:|:---:|",
        f"| {counts['created']} | {counts['updated']} | {counts['deleted']} | {counts['failed']} |",
    ]

    for title, names in (
        ("Created", report.created),
        ("Updated", report.updated),
        ("Deleted", report.deleted),
    ):
        if names:
            lines += ["", f"**{title}:** " + ", ".join(f"`{n}`" for n in names)]

    if report.failed:
        lines += ["", "**Failed:**", ""]
        lines += [f"- `{f.name}`: {f.reason}" for f in report.failed]

    if report.partial:
        lines += ["", "**Partially written (content store and index out of step):**", ""]
        lines += [
            f"- `{p.name}` ({p.operation}): content store "
            f"{'ok' if p.content_written else 'failed'}, index {'ok' if p.index_written else 'failed'}"
            for p in report.partial
        ]

    if not report.has_changes and not report.failed:
        lines += ["", "No changes."]

    return "\n".join(lines) + "\n"


def render_console(report: SyncReport) -> str:
    """Plain-text summary printed at the end of every run."""
    counts = report.counts
    lines = [
        "Sync process completed.",
        f"Created plugins: {counts['created']}",
        f"Updated plugins: {counts['updated']}",
        f"Deleted plugins: {counts['deleted']}",
        f"Failed plugins: {counts['failed']}",
    ]
    if report.created:
        lines.append("Created plugins: " + ", ".join(report.created))
    if report.updated:
        lines.append("Updated plugins: " + ", ".join(report.updated))
    if report.deleted:
        lines.append("Deleted plugins: " + ", ".join(report.deleted))
    if report.failed:
        lines.append("Failed plugins:")
        lines += [f"{f.name}: {f.reason}" for f in report.failed]
    return "\n".join(lines)


def is_summary_comment(body: Optional[str]) -> bool:
    return bool(body) and body.lstrip().startswith(SUMMARY_MARKER)


def resolve_pr_number(settings: Settings) -> Optional[int]:
    """Pull request number from the event payload, else from GITHUB_REF."""
    if settings.github_event_path:
        try:
            event = json.loads(Path(settings.github_event_path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("event_payload_unreadable", path=settings.github_event_path, error=str(e))
        else:
            number = (event.get("pull_request") or {}).get("number") or event.get("number")
            if number:
                return int(number)

    if settings.github_ref:
        match = _PR_REF_RE.match(settings.github_ref)
        if match:
            return int(match.group(1))
    return None


class CommentPublisher:
    """Creates or replaces the sync summary comment on a pull request."""

    def __init__(self, github: GitHubClient, repository: str, issue_number: int):
        self.github = github
        self.repository = repository
        self.issue_number = issue_number

    async def find_summary_comment(self) -> Optional[dict[str, Any]]:
        comments = await self.github.list_issue_comments(self.repository, self.issue_number)
        for comment in comments:
            if is_summary_comment(comment.get("body")):
                return comment
        return None

    async def publish(self, body: str) -> dict[str, Any]:
        """Replace the prior summary comment if one exists, else create one."""
        existing = await self.find_summary_comment()
        if existing is not None:
            logger.info("summary_comment_updated", comment_id=existing["id"], pr=self.issue_number)
            return await self.github.update_issue_comment(self.repository, existing["id"], body)

        logger.info("summary_comment_created", pr=self.issue_number)
        return await self.github.create_issue_comment(self.repository, self.issue_number, body)
