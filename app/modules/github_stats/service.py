from supabase import Client
from app.config import settings
from app.modules.github_stats.client import GitHubClient, GitHubAPIError, get_github_client
from app.modules.github_stats.schemas import GitHubStats, GitHubStatsResponse
from datetime import datetime, timedelta, timezone
from typing import Optional, Union
from fastapi import HTTPException
import logging
from pydantic import TypeAdapter

logger = logging.getLogger(__name__)

_DATETIME = TypeAdapter(datetime)

STATS_COLUMNS = "github_username, github_repository_count, github_commit_count, updated_at"


def _parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = _DATETIME.validate_python(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def should_update(last_updated: Union[str, datetime, None], now: Optional[datetime] = None) -> bool:
    """True once the cached counts are older than github_stats_max_age_hours.

    A profile without a timestamp counts as fresh; the counts it has were
    written by the sign-up trigger moments ago.
    """
    parsed = _parse_timestamp(last_updated)
    if parsed is None:
        return False
    now = now or datetime.now(timezone.utc)
    return parsed < now - timedelta(hours=settings.github_stats_max_age_hours)


class GitHubStatsService:
    def __init__(self, supabase: Client, github: Optional[GitHubClient] = None):
        self.supabase = supabase
        self.github = github or get_github_client()

    def _load_profile(self, user_id: str) -> dict:
        try:
            result = self.supabase.table("profiles")\
                .select(STATS_COLUMNS)\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch profile data")
        if result is None or not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return result.data

    def get_cached_stats(self, user_id: str) -> GitHubStatsResponse:
        """Stats from the profile row; refreshed from GitHub first when they are stale"""
        profile = self._load_profile(user_id)
        github_username = profile.get("github_username")
        if not github_username:
            raise HTTPException(status_code=404, detail="No GitHub account linked")

        last_updated = _parse_timestamp(profile.get("updated_at")) or datetime.now(timezone.utc)
        stale = should_update(last_updated)
        if stale:
            logger.info(f"GitHub stats for {user_id} are older than {settings.github_stats_max_age_hours}h, refreshing")
            try:
                stats = self.update_user_stats(user_id, github_username)
                return GitHubStatsResponse(stats=stats, refreshed=True)
            except HTTPException as e:
                logger.warning(f"Auto-refresh failed for {user_id}, serving cached stats: {e.detail}")

        return GitHubStatsResponse(
            stats=GitHubStats(
                username=github_username,
                repository_count=profile.get("github_repository_count") or 0,
                commit_count=profile.get("github_commit_count") or 0,
                last_updated=last_updated,
            ),
            stale=stale,
        )

    def update_user_stats(self, user_id: str, github_username: str) -> GitHubStats:
        """Fetch fresh counts from GitHub and persist them on the profile"""
        try:
            stats = self.github.fetch_stats(github_username)
        except GitHubAPIError as e:
            if not github_username:
                status_code = 400
            else:
                status_code = {404: 404, 403: 429}.get(e.status_code, 502)
            raise HTTPException(status_code=status_code, detail=e.message)

        try:
            result = self.supabase.table("profiles")\
                .update({
                    "github_repository_count": stats.repository_count,
                    "github_commit_count": stats.commit_count,
                    "updated_at": stats.last_updated.isoformat(),
                })\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating GitHub stats for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update profile with GitHub statistics")
        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")

        logger.info(f"GitHub stats updated for user {user_id}: {stats.repository_count} repositories")
        return stats

    def refresh_current_user(self, user_id: str) -> GitHubStats:
        profile = self._load_profile(user_id)
        github_username = profile.get("github_username")
        if not github_username:
            raise HTTPException(status_code=404, detail="GitHub username not found in profile")
        return self.update_user_stats(user_id, github_username)
