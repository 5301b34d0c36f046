from fastapi import APIRouter, Depends
from app.modules.profiles.schemas import (
    ProfileResponse, ProfileUpdate, OnboardingRequest, OnboardingResponse, OnboardingStatusResponse,
    StepValidationRequest, ValidationReport, CharacterCountRequest, CharacterCountResponse
)
from app.modules.profiles.service import ProfileService, validation_report
from app.modules.profiles import validation
from app.modules.github_stats.routes import get_github_stats_service
from app.modules.github_stats.service import GitHubStatsService
from app.core.dependencies import get_current_user, get_user_supabase
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(
    supabase: Client = Depends(get_user_supabase),
    github_stats: GitHubStatsService = Depends(get_github_stats_service),
) -> ProfileService:
    return ProfileService(supabase, github_stats)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user_data: Dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Current user's profile, created from auth metadata on first access"""
    return service.ensure_profile(user_data)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    changes: ProfileUpdate,
    user_data: Dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    return service.update_profile(user_data["id"], changes)


@router.post("/me/onboarding", response_model=OnboardingResponse)
async def complete_onboarding(
    data: OnboardingRequest,
    user_data: Dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    return service.complete_onboarding(user_data, data)


@router.get("/me/onboarding", response_model=OnboardingStatusResponse)
async def get_onboarding_status(
    user_data: Dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    return service.onboarding_status(user_data)


@router.post("/onboarding/steps/{step}/validate", response_model=ValidationReport)
async def validate_onboarding_step(
    step: int,
    data: StepValidationRequest,
    user_data: Dict = Depends(get_current_user)
):
    """Per-step feedback for the onboarding form; nothing is saved"""
    return validation_report(validation.validate_onboarding_step(step, data.model_dump()))


@router.post("/validate", response_model=ValidationReport)
async def validate_profile(
    data: ProfileUpdate,
    user_data: Dict = Depends(get_current_user)
):
    return validation_report(validation.validate_complete_profile(data.model_dump()).fields())


@router.post("/character-count", response_model=CharacterCountResponse)
async def character_count(data: CharacterCountRequest):
    return validation.character_count_info(data.text, data.max_length)
