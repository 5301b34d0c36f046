import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from pydantic import TypeAdapter, ValidationError
from supabase import Client
from app.config import settings
from app.core.monitoring import monitor
from app.modules.privacy.schemas import (
    PrivacySettings, PrivacySettingsUpdate, UserDataExport,
    DeletionRequestResponse, DeletionStatusResponse, AuditLogEntry
)

logger = logging.getLogger(__name__)

# profiles columns renamed in an export; account_status is internal and left out
_EXPORT_RENAMES = {
    "created_at": "accountCreated",
    "updated_at": "lastUpdated",
    "privacy_settings": "privacySettings",
}
_EXPORT_DROPPED = ("account_status",)

_DATETIME = TypeAdapter(datetime)
_SETTING_ADAPTERS = {name: TypeAdapter(field.annotation) for name, field in PrivacySettings.model_fields.items()}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = _DATETIME.validate_python(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def merge_privacy_settings(stored: Optional[Dict[str, Any]]) -> PrivacySettings:
    """Stored blobs may predate newer flags; unknown keys are ignored and missing or invalid ones take defaults"""
    merged = PrivacySettings().model_dump()
    for key, value in (stored or {}).items():
        if key not in merged or value is None:
            continue
        try:
            merged[key] = _SETTING_ADAPTERS[key].validate_python(value)
        except ValidationError:
            logger.warning(f"Ignoring invalid stored privacy setting {key}={value!r}")
    return PrivacySettings(**merged)


def sanitize_profile_for_export(profile: Dict[str, Any]) -> Dict[str, Any]:
    sanitized = {}
    for key, value in profile.items():
        if key in _EXPORT_DROPPED:
            continue
        sanitized[_EXPORT_RENAMES.get(key, key)] = value
    return sanitized


def days_remaining(scheduled: datetime, now: Optional[datetime] = None) -> int:
    now = now or _now()
    return max(0, math.ceil((scheduled - now).total_seconds() / 86400))


class PrivacyService:
    def __init__(self, supabase: Client, storage: Optional[Client] = None):
        self.supabase = supabase
        self.storage = storage

    # Audit log

    def log_action(
        self,
        user_id: str,
        action: str,
        details: Optional[str] = None,
        client_info: Optional[Dict[str, Optional[str]]] = None,
    ) -> None:
        """Write a privacy audit entry; a failed write never fails the action being audited"""
        client_info = client_info or {}
        try:
            self.supabase.table("privacy_audit_log").insert({
                "user_id": user_id,
                "action": action,
                "details": details,
                "ip_address": client_info.get("ip_address"),
                "user_agent": client_info.get("user_agent"),
                "timestamp": _now().isoformat(),
            }).execute()
        except Exception as e:
            logger.warning(f"Failed to write privacy audit entry {action} for {user_id}: {e}")

    def get_audit_log(self, user_id: str, limit: int = 50) -> List[AuditLogEntry]:
        try:
            result = self.supabase.table("privacy_audit_log")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("timestamp", desc=True)\
                .limit(limit)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching audit log for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch audit log")
        return [AuditLogEntry(**row) for row in (result.data or [])]

    # Settings

    def _profile(self, user_id: str, columns: str = "*") -> Dict[str, Any]:
        try:
            result = self.supabase.table("profiles")\
                .select(columns)\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch profile")
        if result is None or not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return result.data

    def get_privacy_settings(self, user_id: str) -> PrivacySettings:
        return merge_privacy_settings(self._profile(user_id, "privacy_settings").get("privacy_settings"))

    def update_privacy_settings(
        self,
        user_id: str,
        changes: PrivacySettingsUpdate,
        client_info: Optional[Dict[str, Optional[str]]] = None,
    ) -> PrivacySettings:
        current = self.get_privacy_settings(user_id)
        provided = changes.model_dump(exclude_none=True)
        updated = PrivacySettings(**{**current.model_dump(), **provided})

        try:
            self.supabase.table("profiles")\
                .update({
                    "privacy_settings": updated.model_dump(),
                    "updated_at": _now().isoformat(),
                })\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating privacy settings for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update privacy settings")

        self.log_action(user_id, "privacy_settings_updated", ", ".join(sorted(provided)), client_info)
        monitor.log_security_event("privacy_change", "low", user_id=user_id, details={"fields": sorted(provided)})
        return updated

    # Export

    def _uploaded_files(self, user_id: str) -> List[str]:
        if self.storage is None:
            return []
        try:
            listed = self.storage.storage.from_(settings.avatar_bucket).list("", {"search": user_id}) or []
        except Exception as e:
            logger.warning(f"Could not list uploaded files for {user_id}: {e}")
            return []
        return [f["name"] for f in listed if (f.get("name") or "").startswith(f"{user_id}_")]

    def export_user_data(
        self,
        user_data: Dict[str, Any],
        client_info: Optional[Dict[str, Optional[str]]] = None,
    ) -> UserDataExport:
        user_id = user_data["id"]
        profile = sanitize_profile_for_export(self._profile(user_id))
        app_metadata = user_data.get("app_metadata") or {}
        auth_data = {
            "id": user_id,
            "email": user_data.get("email"),
            "emailConfirmed": bool(user_data.get("email_confirmed_at")),
            "createdAt": user_data.get("created_at"),
            "lastSignIn": user_data.get("last_sign_in_at"),
            "provider": app_metadata.get("provider"),
        }
        activity = [entry.model_dump(mode="json") for entry in self.get_audit_log(user_id, limit=1000)]
        now = _now()

        try:
            self.supabase.table("data_export_requests").insert({
                "user_id": user_id,
                "status": "completed",
                "requested_at": now.isoformat(),
                "completed_at": now.isoformat(),
                "export_expires_at": (now + timedelta(days=settings.export_retention_days)).isoformat(),
            }).execute()
        except Exception as e:
            logger.warning(f"Failed to record data export for {user_id}: {e}")

        self.log_action(user_id, "data_exported", None, client_info)
        monitor.log_security_event("data_access", "medium", user_id=user_id, details={"action": "data_export"})
        return UserDataExport(
            profile=profile,
            authData=auth_data,
            activityLogs=activity,
            uploadedFiles=self._uploaded_files(user_id),
            exportDate=now.isoformat(),
            exportVersion=settings.export_version,
        )

    # Account deletion

    def _pending_request(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("account_deletion_requests")\
            .select("*")\
            .eq("user_id", user_id)\
            .eq("status", "pending")\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _set_account_status(self, user_id: str, account_status: str) -> None:
        self.supabase.table("profiles")\
            .update({"account_status": account_status, "updated_at": _now().isoformat()})\
            .eq("id", user_id)\
            .execute()

    def _restore_account_status(self, user_id: str, account_status: str) -> None:
        try:
            self._set_account_status(user_id, account_status)
        except Exception as e:
            logger.error(f"Failed to restore account_status={account_status} for {user_id}: {e}")

    def request_account_deletion(
        self,
        user_id: str,
        reason: Optional[str] = None,
        client_info: Optional[Dict[str, Optional[str]]] = None,
    ) -> DeletionRequestResponse:
        if self._pending_request(user_id):
            raise HTTPException(status_code=409, detail="Account deletion already requested")

        now = _now()
        scheduled = now + timedelta(days=settings.deletion_grace_period_days)
        # profile first so a pending request never sits on an active account
        try:
            self._set_account_status(user_id, "pending_deletion")
            self.supabase.table("account_deletion_requests").insert({
                "user_id": user_id,
                "reason": reason,
                "status": "pending",
                "requested_at": now.isoformat(),
                "scheduled_deletion_date": scheduled.isoformat(),
            }).execute()
        except Exception as e:
            logger.error(f"Error requesting account deletion for {user_id}: {e}")
            self._restore_account_status(user_id, "active")
            raise HTTPException(status_code=500, detail="Failed to request account deletion")

        self.log_action(user_id, "account_deletion_requested", reason, client_info)
        monitor.log_security_event("privacy_change", "high", user_id=user_id, details={"action": "deletion_requested"})
        return DeletionRequestResponse(
            message=f"Account deletion scheduled. You have {settings.deletion_grace_period_days} days to cancel.",
            scheduled_deletion_date=scheduled,
        )

    def cancel_account_deletion(
        self,
        user_id: str,
        client_info: Optional[Dict[str, Optional[str]]] = None,
    ) -> Dict[str, str]:
        pending = self._pending_request(user_id)
        if not pending:
            raise HTTPException(status_code=404, detail="No pending deletion request found")
        scheduled = _parse(pending.get("scheduled_deletion_date"))
        if scheduled is not None and scheduled <= _now():
            raise HTTPException(status_code=409, detail="Deletion grace period has expired")

        try:
            self._set_account_status(user_id, "active")
            self.supabase.table("account_deletion_requests")\
                .update({"status": "cancelled", "cancelled_at": _now().isoformat()})\
                .eq("id", pending["id"])\
                .execute()
        except Exception as e:
            logger.error(f"Error cancelling account deletion for {user_id}: {e}")
            self._restore_account_status(user_id, "pending_deletion")
            raise HTTPException(status_code=500, detail="Failed to cancel account deletion")

        self.log_action(user_id, "account_deletion_cancelled", None, client_info)
        return {"message": "Account deletion cancelled"}

    def get_account_deletion_status(self, user_id: str) -> DeletionStatusResponse:
        try:
            result = self.supabase.table("account_deletion_requests")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("requested_at", desc=True)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching deletion status for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch deletion status")
        if not result.data:
            return DeletionStatusResponse(status="none")

        latest = result.data[0]
        if latest["status"] != "pending":
            return DeletionStatusResponse(status=latest["status"])
        scheduled = _parse(latest.get("scheduled_deletion_date"))
        return DeletionStatusResponse(
            status="pending",
            scheduled_date=scheduled,
            days_remaining=days_remaining(scheduled) if scheduled else None,
        )


class RetentionService:
    """Retention jobs; run with the service-role client since they act across users"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def process_scheduled_deletions(self, now: Optional[datetime] = None) -> int:
        now = now or _now()
        result = self.supabase.table("account_deletion_requests")\
            .select("*")\
            .eq("status", "pending")\
            .execute()
        due = [
            row for row in (result.data or [])
            if (_parse(row.get("scheduled_deletion_date")) or now) <= now
        ]
        for row in due:
            try:
                self.supabase.table("profiles")\
                    .update({"account_status": "deleted", "updated_at": now.isoformat()})\
                    .eq("id", row["user_id"])\
                    .execute()
                self.supabase.table("account_deletion_requests")\
                    .update({"status": "completed", "completed_at": now.isoformat()})\
                    .eq("id", row["id"])\
                    .execute()
                logger.info(f"Completed scheduled deletion for user {row['user_id']}")
            except Exception as e:
                logger.error(f"Failed to complete deletion request {row.get('id')}: {e}")
        return len(due)

    def cleanup_expired_exports(self, now: Optional[datetime] = None) -> int:
        now = now or _now()
        result = self.supabase.table("data_export_requests")\
            .select("*")\
            .eq("status", "completed")\
            .execute()
        expired = []
        for row in result.data or []:
            expires = _parse(row.get("export_expires_at"))
            if expires is not None and expires < now:
                expired.append(row)
        for row in expired:
            try:
                self.supabase.table("data_export_requests")\
                    .update({"status": "expired"})\
                    .eq("id", row["id"])\
                    .execute()
                # owners see the expiry in their own audit log
                self.supabase.table("privacy_audit_log").insert({
                    "user_id": row["user_id"],
                    "action": "export_cleanup",
                    "details": "Expired data export automatically cleaned up",
                    "timestamp": now.isoformat(),
                }).execute()
            except Exception as e:
                logger.error(f"Failed to expire data export {row.get('id')}: {e}")
        if expired:
            logger.info(f"Marked {len(expired)} data export(s) as expired")
        return len(expired)
