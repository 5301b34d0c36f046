import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from app.config import settings
from app.modules.github_stats.schemas import GitHubStats

logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GitHubClient:
    """Read-only client for the public GitHub REST API"""

    def __init__(self, http_client: Optional[httpx.Client] = None):
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": settings.app_name,
        }
        if settings.github_token:
            headers["Authorization"] = f"Bearer {settings.github_token}"
        self._http = http_client or httpx.Client(
            base_url=settings.github_api_url,
            headers=headers,
            timeout=settings.github_timeout_seconds,
        )

    def fetch_stats(self, github_username: str) -> GitHubStats:
        """Public repository count plus an estimated commit count.

        Exact commit totals need one request per repository, so the commit count
        is estimated as repositories * github_commits_per_repo_estimate.
        """
        if not github_username:
            raise GitHubAPIError("GitHub username is required")

        logger.info("Fetching GitHub stats for %s", github_username)
        try:
            response = self._http.get(f"/users/{github_username}")
        except httpx.HTTPError as e:
            logger.error("GitHub request failed for %s: %s", github_username, e)
            raise GitHubAPIError(f"Failed to reach GitHub: {e}")

        if response.status_code == 404:
            raise GitHubAPIError("GitHub user not found", 404)
        if response.status_code == 403:
            raise GitHubAPIError("GitHub API rate limit exceeded", 403)
        if not response.is_success:
            raise GitHubAPIError(f"GitHub API error: {response.status_code}", response.status_code)

        repository_count = int(response.json().get("public_repos") or 0)
        return GitHubStats(
            username=github_username,
            repository_count=repository_count,
            commit_count=max(repository_count * settings.github_commits_per_repo_estimate, 0),
            last_updated=datetime.now(timezone.utc),
        )

    def close(self) -> None:
        self._http.close()


_shared_client: Optional[GitHubClient] = None


def get_github_client() -> GitHubClient:
    """Process-wide client so requests reuse one connection pool"""
    global _shared_client
    if _shared_client is None:
        _shared_client = GitHubClient()
    return _shared_client


def close_github_client() -> None:
    global _shared_client
    if _shared_client is not None:
        _shared_client.close()
        _shared_client = None
