from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for retention jobs that run outside a user session

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_token: Optional[str] = None
    github_timeout_seconds: float = 10.0
    github_stats_max_age_hours: int = 24
    github_commits_per_repo_estimate: int = 10

    # Avatars (Supabase Storage)
    avatar_bucket: str = "profile-pictures"
    avatar_max_bytes: int = 5 * 1024 * 1024
    avatar_size_px: int = 200
    avatar_jpeg_quality: int = 80
    avatar_cache_control: str = "3600"

    # Privacy
    deletion_grace_period_days: int = 30
    export_version: str = "1.0"
    export_retention_days: int = 7
    retention_interval_seconds: int = 3600
    retention_scheduler_enabled: bool = False

    # App
    app_name: str = "devrecruit-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:19006,http://127.0.0.1:3000,http://127.0.0.1:19006"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
