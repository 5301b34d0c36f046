from fastapi import APIRouter, Depends, HTTPException
from app.modules.security.scanner import SecurityScanner
from app.modules.security.schemas import SecurityReport, MonitoringSummary
from app.core.dependencies import get_current_user, get_user_supabase, require_super_user
from app.core.errors import error_handler
from app.core.monitoring import monitor
from app.database.supabase_client import SupabaseClient
from supabase import Client
from dataclasses import asdict
from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/security", tags=["security"])
monitoring_router = APIRouter(prefix="/monitoring", tags=["monitoring"])


def _load_profile(supabase: Client, profile_id: str) -> Dict[str, Any]:
    result = supabase.table("profiles")\
        .select("*")\
        .eq("id", profile_id)\
        .maybe_single()\
        .execute()
    if result is None or not result.data:
        raise HTTPException(status_code=404, detail="Profile not found")
    return result.data


@router.get("/me/scan", response_model=SecurityReport)
async def scan_my_profile(
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_user_supabase)
):
    return SecurityScanner().scan_profile(_load_profile(supabase, user_data["id"]))


@router.get("/profiles/{profile_id}/scan", response_model=SecurityReport)
async def scan_profile(
    profile_id: str,
    user_data: Dict = Depends(require_super_user)
):
    """Operators scan any profile; RLS would hide other users' rows, so this reads with the service client"""
    monitor.log_security_event(
        "data_access", "medium", user_id=user_data["id"], details={"action": "profile_scan", "profile_id": profile_id}
    )
    return SecurityScanner().scan_profile(_load_profile(SupabaseClient.get_service_client(), profile_id))


@monitoring_router.get("/summary", response_model=MonitoringSummary)
async def monitoring_summary(user_data: Dict = Depends(require_super_user)):
    summary = monitor.summary()
    summary["errors"] = error_handler.stats()
    return summary


@monitoring_router.get("/errors")
async def recent_errors(
    limit: int = 10,
    user_data: Dict = Depends(require_super_user)
) -> List[Dict[str, Any]]:
    return [
        {
            "category": log.category.value,
            "severity": log.severity.value,
            "technical_error": log.technical_error,
            "user_message": log.user_message,
            "timestamp": log.timestamp,
            "context": asdict(log.context),
        }
        for log in error_handler.recent_errors(min(max(limit, 1), 100))
    ]
