"""GitHub REST API client: repository stats, README and PR comments."""

from __future__ import annotations

from typing import Any, Optional

from plugin_sync_common import get_logger

from plugin_sync.clients.base import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, BaseClient
from plugin_sync.models import RepoInfo
from plugin_sync.rate_limiter import RateLimiter

logger = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_HOST = "github.com"
COMMENTS_PER_PAGE = 100

# Rendered HTML instead of base64 markdown
README_HTML_ACCEPT = "application/vnd.github.html+json"


class GitHubClient(BaseClient):
    """Async GitHub client.

    Works without a token for public data, at a much lower rate limit.

    Example:
        >>> async with GitHubClient(token) as github:
        ...     info = await github.get_repo_info("dherault", "serverless-offline")
        ...     print(info.github_stars)
    """

    service = "github"

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff: float = 1.0,
        rate_limiter: Optional[RateLimiter] = None,
        base_url: str = GITHUB_API_URL,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        super().__init__(
            base_url,
            headers=headers,
            timeout=timeout,
            max_attempts=max_attempts,
            retry_backoff=retry_backoff,
            rate_limiter=rate_limiter or RateLimiter(requests_per_second=5.0, burst_size=10),
        )

    # -------------------------------------------------------------------------
    # Repositories
    # -------------------------------------------------------------------------

    async def get_repo_info(self, owner: str, repo: str) -> Optional[RepoInfo]:
        """Stars and owner identity, or None if the repository does not exist."""
        response = await self._request(
            "GET", f"/repos/{owner}/{repo}", operation="get_repo", allow_not_found=True
        )
        if response is None:
            return None
        data = response.json()
        repo_owner = data.get("owner") or {}
        return RepoInfo(
            github_stars=data.get("stargazers_count") or 0,
            author_name=repo_owner.get("login"),
            author_link=repo_owner.get("html_url"),
            author_avatar=repo_owner.get("avatar_url"),
        )

    async def get_readme(self, owner: str, repo: str) -> Optional[str]:
        """Rendered README HTML, or None if missing or empty."""
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/readme",
            operation="get_readme",
            allow_not_found=True,
            headers={"Accept": README_HTML_ACCEPT},
        )
        if response is None or not response.text.strip():
            return None
        return response.text

    # -------------------------------------------------------------------------
    # Issue / pull request comments
    # -------------------------------------------------------------------------

    async def list_issue_comments(self, repository: str, issue_number: int) -> list[dict[str, Any]]:
        """All comments on an issue or pull request, oldest first."""
        comments: list[dict[str, Any]] = []
        page = 1
        while True:
            response = await self._request(
                "GET",
                f"/repos/{repository}/issues/{issue_number}/comments",
                operation="list_comments",
                params={"per_page": COMMENTS_PER_PAGE, "page": page},
            )
            batch = response.json()
            comments.extend(batch)
            if len(batch) < COMMENTS_PER_PAGE:
                return comments
            page += 1

    async def create_issue_comment(
        self, repository: str, issue_number: int, body: str
    ) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/repos/{repository}/issues/{issue_number}/comments",
            operation="create_comment",
            json={"body": body},
        )
        return response.json()

    async def update_issue_comment(
        self, repository: str, comment_id: int, body: str
    ) -> dict[str, Any]:
        response = await self._request(
            "PATCH",
            f"/repos/{repository}/issues/comments/{comment_id}",
            operation="update_comment",
            json={"body": body},
        )
        return response.json()
