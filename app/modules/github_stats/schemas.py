from pydantic import BaseModel
from datetime import datetime


class GitHubStats(BaseModel):
    username: str
    repository_count: int = 0
    commit_count: int = 0
    last_updated: datetime


class GitHubStatsResponse(BaseModel):
    stats: GitHubStats
    refreshed: bool = False
    stale: bool = False
