"""
Core dependencies for route protection.

Profile data is owned by exactly one auth user. Routes resolve the caller from
the bearer token and hand services a Supabase client that carries that token,
so the profiles RLS policies (auth.uid() = id) apply to every query.
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import SupabaseClient, get_supabase
from app.modules.auth.service import AuthService
from supabase import Client
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_access_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """Resolve the auth user behind the bearer token"""
    return auth_service.get_current_user(token)


def get_user_supabase(token: str = Depends(get_access_token)) -> Client:
    """Supabase client scoped to the caller's JWT (RLS applies)"""
    return SupabaseClient.get_user_client(token)


def get_storage_supabase() -> Client:
    """Storage client for the avatar bucket. Object names are always prefixed with the caller's id by the service."""
    return SupabaseClient.get_service_client()


def is_super_user(user_data: dict) -> bool:
    """Operators carry app_metadata.type == "super_user"; app_metadata is server-side only."""
    app_metadata = user_data.get("app_metadata") or {}
    return app_metadata.get("type") == "super_user"


def require_super_user(user_data: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_super_user(user_data):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator access required"
        )
    return user_data


def check_owner(user_id: str, user_data: dict) -> dict:
    """Allow only the owning user (or an operator) to act on a user's data"""
    if user_data["id"] == user_id or is_super_user(user_data):
        return user_data
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only access your own data"
    )


def get_client_info(request: Request) -> Dict[str, Optional[str]]:
    """IP address and user agent for the privacy audit log"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return {
        "ip_address": ip_address,
        "user_agent": request.headers.get("user-agent"),
    }
