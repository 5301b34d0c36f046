import io
import logging
import re
import time
from typing import List, Optional
from fastapi import HTTPException
from PIL import Image, UnidentifiedImageError
from supabase import Client
from app.config import settings
from app.core.errors import error_handler, ErrorContext
from app.modules.avatars.schemas import AvatarResponse

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png")
BLOCKED_FILENAME_EXTENSIONS = (".exe", ".bat", ".cmd", ".scr", ".pif", ".com")
_EXTENSION_BY_TYPE = {"image/jpeg": "jpg", "image/jpg": "jpg", "image/png": "png"}
_PIL_FORMAT = {"jpg": "JPEG", "jpeg": "JPEG", "png": "PNG"}


def validate_image_file(filename: Optional[str], content_type: Optional[str], size: int) -> Optional[str]:
    """Return an error message for an unacceptable upload, None when it may proceed"""
    if size > settings.avatar_max_bytes:
        return f"File size must be less than {settings.avatar_max_bytes // (1024 * 1024)}MB"
    if (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        return "Only JPEG and PNG images are allowed"
    name = (filename or "").lower()
    if any(ext in name for ext in BLOCKED_FILENAME_EXTENSIONS):
        return "Invalid file name"
    return None


def generate_avatar_filename(user_id: str, extension: str) -> str:
    return f"{user_id}_{int(time.time() * 1000)}.{extension.lower().lstrip('.')}"


def resize_image_to_square(content: bytes, size: int, extension: str = "jpg") -> bytes:
    """Center-crop to the shortest side and scale to size x size"""
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        logger.info(f"Rejected avatar that is not a readable image: {e}")
        raise HTTPException(status_code=400, detail="Invalid image file")

    side = min(image.width, image.height)
    left = (image.width - side) // 2
    top = (image.height - side) // 2
    square = image.crop((left, top, left + side, top + side)).resize((size, size), Image.LANCZOS)

    fmt = _PIL_FORMAT.get(extension.lower(), "JPEG")
    out = io.BytesIO()
    if fmt == "JPEG":
        if square.mode not in ("RGB", "L"):
            square = square.convert("RGB")
        square.save(out, format="JPEG", quality=settings.avatar_jpeg_quality)
    else:
        square.save(out, format="PNG")
    return out.getvalue()


def storage_error_message(error: Exception) -> str:
    message = str(error).lower()
    if "bucket not found" in message:
        return "Storage is not configured. Please contact support."
    if "payload too large" in message or "too large" in message:
        return "Image is too large. Please choose a smaller file."
    if "invalid mime type" in message or "mime" in message:
        return "Invalid image format. Please use JPEG or PNG."
    if "jwt" in message or "unauthorized" in message:
        return "Authentication error. Please sign in again."
    if "row-level security" in message or "permission" in message or "forbidden" in message:
        return "You do not have permission to upload this file."
    return "Failed to upload avatar. Please try again."


class AvatarService:
    """Avatar storage in the profile-pictures bucket.

    Storage calls go through the service-role client, so every object name is
    built here from the caller's id and old files are matched on that prefix.
    """

    def __init__(self, supabase: Client, storage: Client):
        self.supabase = supabase
        self.bucket = storage.storage.from_(settings.avatar_bucket)

    def _own_files(self, user_id: str) -> List[str]:
        pattern = re.compile(rf"^{re.escape(user_id)}_.*\.(jpg|jpeg|png)$")
        listed = self.bucket.list("", {"search": user_id}) or []
        return [f["name"] for f in listed if pattern.match(f.get("name") or "")]

    def delete_old_avatars(self, user_id: str) -> int:
        try:
            names = self._own_files(user_id)
            if names:
                self.bucket.remove(names)
            return len(names)
        except Exception as e:
            logger.warning(f"Failed to delete old avatars for {user_id}: {e}")
            return 0

    def _set_avatar_url(self, user_id: str, avatar_url: Optional[str]) -> None:
        try:
            result = self.supabase.table("profiles")\
                .update({"avatar_url": avatar_url})\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating avatar_url for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update profile picture")
        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")

    def upload_avatar(self, user_id: str, filename: Optional[str], content_type: Optional[str], content: bytes) -> AvatarResponse:
        error = validate_image_file(filename, content_type, len(content))
        if error:
            raise HTTPException(status_code=400, detail=error)

        extension = _EXTENSION_BY_TYPE[content_type.lower()]
        resized = resize_image_to_square(content, settings.avatar_size_px, extension)
        self.delete_old_avatars(user_id)

        object_name = generate_avatar_filename(user_id, extension)
        try:
            self.bucket.upload(
                object_name,
                resized,
                {
                    "content-type": "image/png" if extension == "png" else "image/jpeg",
                    "cache-control": settings.avatar_cache_control,
                    "upsert": "false",
                },
            )
        except Exception as e:
            response = error_handler.handle_error(
                e, ErrorContext(user_id=user_id, action="upload_avatar", component="avatars"), storage_error_message(e)
            )
            raise HTTPException(status_code=502, detail=response.user_message)

        avatar_url = self.bucket.get_public_url(object_name)
        self._set_avatar_url(user_id, avatar_url)
        logger.info(f"Uploaded avatar {object_name}")
        return AvatarResponse(avatar_url=avatar_url, file_name=object_name)

    def remove_avatar(self, user_id: str) -> int:
        removed = self.delete_old_avatars(user_id)
        self._set_avatar_url(user_id, None)
        return removed
