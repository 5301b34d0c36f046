from fastapi import APIRouter, Depends
from app.core.dependencies import get_current_user, get_user_supabase
from app.modules.github_stats.schemas import GitHubStats, GitHubStatsResponse
from app.modules.github_stats.service import GitHubStatsService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/github-stats", tags=["github-stats"])


def get_github_stats_service(supabase: Client = Depends(get_user_supabase)) -> GitHubStatsService:
    return GitHubStatsService(supabase)


@router.get("/me", response_model=GitHubStatsResponse)
async def get_my_stats(
    user_data: Dict = Depends(get_current_user),
    service: GitHubStatsService = Depends(get_github_stats_service),
):
    """Cached GitHub stats; refreshed automatically once older than 24 hours"""
    return service.get_cached_stats(user_data["id"])


@router.post("/me/refresh", response_model=GitHubStats)
async def refresh_my_stats(
    user_data: Dict = Depends(get_current_user),
    service: GitHubStatsService = Depends(get_github_stats_service),
):
    return service.refresh_current_user(user_data["id"])
