from supabase import Client
from app.modules.profiles.schemas import (
    ProfileResponse, ProfileUpdate, OnboardingRequest, OnboardingResponse, OnboardingStatusResponse
)
from app.modules.profiles import validation
from app.modules.privacy.schemas import PrivacySettings
from app.modules.github_stats.service import GitHubStatsService
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _to_profile(data: Dict[str, Any]) -> ProfileResponse:
    row = dict(data)
    row["coding_languages"] = row.get("coding_languages") or []
    row["github_repository_count"] = row.get("github_repository_count") or 0
    row["github_commit_count"] = row.get("github_commit_count") or 0
    row["onboarding_completed"] = bool(row.get("onboarding_completed"))
    row["account_status"] = row.get("account_status") or "active"
    return ProfileResponse(**row)


def _github_login(user_data: Dict[str, Any]) -> Optional[str]:
    metadata = user_data.get("user_metadata") or {}
    return metadata.get("user_name") or metadata.get("login")


class ProfileService:
    def __init__(self, supabase: Client, github_stats: Optional[GitHubStatsService] = None):
        self.supabase = supabase
        self.github_stats = github_stats

    def _fetch(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch profile")
        if result is None or not result.data:
            return None
        return result.data

    def get_profile(self, user_id: str) -> ProfileResponse:
        data = self._fetch(user_id)
        if data is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        return _to_profile(data)

    def ensure_profile(self, user_data: Dict[str, Any]) -> ProfileResponse:
        """Return the caller's profile, creating it from auth metadata when the sign-up trigger has not"""
        data = self._fetch(user_data["id"])
        if data is not None:
            return _to_profile(data)

        metadata = user_data.get("user_metadata") or {}
        email = user_data.get("email") or ""
        username = validation.format_username(email.split("@")[0]) if email else None
        new_profile = {
            "id": user_data["id"],
            "email": email or None,
            "username": username or None,
            "full_name": metadata.get("full_name") or metadata.get("name"),
            "avatar_url": metadata.get("avatar_url") or metadata.get("picture"),
            "github_username": _github_login(user_data),
            "github_repository_count": 0,
            "github_commit_count": 0,
            "coding_languages": [],
            "onboarding_completed": False,
            "account_status": "active",
            "privacy_settings": PrivacySettings().model_dump(),
        }
        try:
            result = self.supabase.table("profiles").insert(new_profile).execute()
        except Exception as e:
            logger.error(f"Error creating profile for {user_data['id']}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create profile")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create profile")

        logger.info(f"Created profile for user {user_data['id']}")
        return _to_profile(result.data[0])

    def _username_taken(self, username: str, user_id: str) -> bool:
        result = self.supabase.table("profiles")\
            .select("id")\
            .eq("username", username)\
            .execute()
        return any(row["id"] != user_id for row in (result.data or []))

    def _save(self, user_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update profile")
        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return result.data[0]

    def update_profile(self, user_id: str, changes: ProfileUpdate) -> ProfileResponse:
        """Validate and save only the fields present in the request"""
        provided = changes.model_dump(exclude_unset=True)
        checks = {
            "full_name": validation.validate_full_name,
            "username": validation.validate_username,
            "age": validation.validate_age,
            "about_me": validation.validate_about_me,
            "education_status": validation.validate_education_status,
            "coding_languages": validation.validate_coding_languages,
        }
        results = {name: checks[name](value) for name, value in provided.items() if name in checks}
        errors = validation.collect_errors(results)
        if errors:
            raise HTTPException(status_code=400, detail=errors)

        update_data: Dict[str, Any] = {}
        if "full_name" in provided:
            update_data["full_name"] = validation.format_full_name(provided["full_name"])
        if "username" in provided:
            username = validation.format_username(provided["username"])
            if self._username_taken(username, user_id):
                raise HTTPException(status_code=409, detail="Username is already taken")
            update_data["username"] = username
        if "age" in provided:
            update_data["age"] = validation.parse_age(provided["age"])
        if "about_me" in provided:
            update_data["about_me"] = (provided["about_me"] or "").strip() or None
        if "education_status" in provided:
            update_data["education_status"] = provided["education_status"]
        if "coding_languages" in provided:
            update_data["coding_languages"] = provided["coding_languages"]

        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        return _to_profile(self._save(user_id, update_data))

    def complete_onboarding(self, user_data: Dict[str, Any], data: OnboardingRequest) -> OnboardingResponse:
        user_id = user_data["id"]
        results = {
            "full_name": validation.validate_full_name(data.full_name),
            "username": validation.validate_username(data.username),
            "age": validation.validate_age(data.age),
            "education_status": validation.validate_education_status(data.education_status),
        }
        results.update(validation.validate_onboarding_step(4, {"coding_languages": data.coding_languages}))
        errors = validation.collect_errors(results)
        if errors:
            raise HTTPException(status_code=400, detail=errors)

        username = validation.format_username(data.username)
        if self._username_taken(username, user_id):
            raise HTTPException(status_code=409, detail="Username is already taken")

        languages = list(data.coding_languages)
        truncated = len(languages) > validation.MAX_CODING_LANGUAGES
        if truncated:
            logger.info(f"Truncating {len(languages)} coding languages for user {user_id}")
            languages = languages[:validation.MAX_CODING_LANGUAGES]

        saved = self._save(user_id, {
            "full_name": validation.format_full_name(data.full_name),
            "username": username,
            "age": validation.parse_age(data.age),
            "education_status": data.education_status,
            "coding_languages": languages,
            "onboarding_completed": True,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })

        refreshed = False
        github_login = _github_login(user_data) or saved.get("github_username")
        if github_login and self.github_stats is not None:
            try:
                self.github_stats.update_user_stats(user_id, github_login)
                refreshed = True
                saved = self._fetch(user_id) or saved
            except HTTPException as e:
                logger.warning(f"GitHub stats refresh after onboarding failed for {user_id}: {e.detail}")

        message = "Onboarding completed"
        if truncated:
            message += f"; only the first {validation.MAX_CODING_LANGUAGES} coding languages were saved"
        return OnboardingResponse(
            profile=_to_profile(saved),
            languages_truncated=truncated,
            github_stats_refreshed=refreshed,
            message=message,
        )

    def onboarding_status(self, user_data: Dict[str, Any]) -> OnboardingStatusResponse:
        profile = self.ensure_profile(user_data)
        if profile.onboarding_completed:
            return OnboardingStatusResponse(onboarding_completed=True)

        current = profile.model_dump()
        for step in range(1, validation.ONBOARDING_STEPS + 1):
            results = validation.validate_onboarding_step(step, current)
            if not all(r.is_valid for r in results.values()):
                return OnboardingStatusResponse(onboarding_completed=False, next_step=step)
        return OnboardingStatusResponse(onboarding_completed=False, next_step=validation.ONBOARDING_STEPS)


def validation_report(results: Dict[str, validation.ValidationResult]) -> Dict[str, Any]:
    errors: List[str] = validation.collect_errors(results)
    return {
        "is_valid": not errors,
        "fields": {
            name: {"is_valid": r.is_valid, "error": r.error, "suggestion": r.suggestion}
            for name, r in results.items()
        },
        "errors": errors,
    }
