from fastapi import APIRouter, Depends
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, CurrentUserResponse
)
from app.modules.auth.service import AuthService
from app.core.dependencies import (
    get_auth_service, get_access_token, get_current_user, get_user_supabase, is_super_user
)
from supabase import Client
from typing import Dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service)
):
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    current_user: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_user_supabase),
):
    """Current auth user plus the onboarding flag the client uses to pick its first screen"""
    onboarding_completed = False
    try:
        result = supabase.table("profiles")\
            .select("onboarding_completed")\
            .eq("id", current_user["id"])\
            .maybe_single()\
            .execute()
        if result is not None and result.data:
            onboarding_completed = bool(result.data.get("onboarding_completed"))
    except Exception as e:
        logger.warning("Could not read onboarding flag for %s: %s", current_user["id"], e)
    return CurrentUserResponse(
        id=current_user["id"],
        email=current_user.get("email"),
        user_metadata=current_user.get("user_metadata") or {},
        app_metadata=current_user.get("app_metadata") or {},
        onboarding_completed=onboarding_completed,
        is_super_user=is_super_user(current_user),
    )
