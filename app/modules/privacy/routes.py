from fastapi import APIRouter, Depends, Request
from app.modules.privacy.schemas import (
    PrivacySettings, PrivacySettingsUpdate, UserDataExport, DeletionRequestCreate,
    DeletionRequestResponse, DeletionStatusResponse, AuditLogEntry
)
from app.modules.privacy.service import PrivacyService
from app.core.dependencies import get_current_user, get_user_supabase, get_storage_supabase, get_client_info
from supabase import Client
from typing import Dict, List, Optional

router = APIRouter(prefix="/privacy", tags=["privacy"])


def get_privacy_service(
    supabase: Client = Depends(get_user_supabase),
    storage: Client = Depends(get_storage_supabase),
) -> PrivacyService:
    return PrivacyService(supabase, storage)


@router.get("/settings", response_model=PrivacySettings)
async def get_settings(
    user_data: Dict = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service)
):
    return service.get_privacy_settings(user_data["id"])


@router.put("/settings", response_model=PrivacySettings)
async def update_settings(
    changes: PrivacySettingsUpdate,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service)
):
    """Partial update; flags left out of the body keep their stored value"""
    return service.update_privacy_settings(user_data["id"], changes, get_client_info(request))


@router.get("/export", response_model=UserDataExport)
async def export_data(
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service)
):
    return service.export_user_data(user_data, get_client_info(request))


@router.post("/deletion", response_model=DeletionRequestResponse, status_code=201)
async def request_deletion(
    request: Request,
    body: Optional[DeletionRequestCreate] = None,
    user_data: Dict = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service)
):
    reason = body.reason if body else None
    return service.request_account_deletion(user_data["id"], reason, get_client_info(request))


@router.delete("/deletion")
async def cancel_deletion(
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service)
):
    return service.cancel_account_deletion(user_data["id"], get_client_info(request))


@router.get("/deletion", response_model=DeletionStatusResponse)
async def deletion_status(
    user_data: Dict = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service)
):
    return service.get_account_deletion_status(user_data["id"])


@router.get("/audit-log", response_model=List[AuditLogEntry])
async def audit_log(
    limit: int = 50,
    user_data: Dict = Depends(get_current_user),
    service: PrivacyService = Depends(get_privacy_service)
):
    return service.get_audit_log(user_data["id"], min(max(limit, 1), 200))
