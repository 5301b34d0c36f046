from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from app.config import settings
from app.modules.avatars.schemas import AvatarResponse, AvatarDeleteResponse
from app.modules.avatars.service import AvatarService, validate_image_file
from app.core.dependencies import get_current_user, get_user_supabase, get_storage_supabase
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/avatars", tags=["avatars"])


def get_avatar_service(
    supabase: Client = Depends(get_user_supabase),
    storage: Client = Depends(get_storage_supabase),
) -> AvatarService:
    return AvatarService(supabase, storage)


@router.post("/me", response_model=AvatarResponse, status_code=201)
async def upload_my_avatar(
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user),
    service: AvatarService = Depends(get_avatar_service)
):
    """Upload a JPEG or PNG avatar; it is cropped to a 200px square and replaces any previous one"""
    if file.size is not None and file.size > settings.avatar_max_bytes:
        raise HTTPException(status_code=400, detail=validate_image_file(file.filename, file.content_type, file.size))
    # one byte past the limit is enough for the size check to reject it
    content = await file.read(settings.avatar_max_bytes + 1)
    return service.upload_avatar(user_data["id"], file.filename, file.content_type, content)


@router.delete("/me", response_model=AvatarDeleteResponse)
async def delete_my_avatar(
    user_data: Dict = Depends(get_current_user),
    service: AvatarService = Depends(get_avatar_service)
):
    removed = service.remove_avatar(user_data["id"])
    return AvatarDeleteResponse(message="Profile picture removed", removed_files=removed)
