from pydantic import BaseModel
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime

ProfileVisibility = Literal["public", "private", "limited"]
DeletionStatus = Literal["none", "pending", "cancelled", "completed"]


class PrivacySettings(BaseModel):
    """Stored as camelCase JSON in profiles.privacy_settings"""
    profileVisibility: ProfileVisibility = "public"
    showEmail: bool = False
    showGithub: bool = True
    allowDirectMessages: bool = True
    allowProjectInvites: bool = True
    dataProcessingConsent: bool = True
    marketingConsent: bool = False
    analyticsConsent: bool = True


class PrivacySettingsUpdate(BaseModel):
    profileVisibility: Optional[ProfileVisibility] = None
    showEmail: Optional[bool] = None
    showGithub: Optional[bool] = None
    allowDirectMessages: Optional[bool] = None
    allowProjectInvites: Optional[bool] = None
    dataProcessingConsent: Optional[bool] = None
    marketingConsent: Optional[bool] = None
    analyticsConsent: Optional[bool] = None

    class Config:
        extra = "forbid"


class UserDataExport(BaseModel):
    profile: Dict[str, Any]
    authData: Dict[str, Any]
    activityLogs: List[Dict[str, Any]]
    uploadedFiles: List[str]
    exportDate: str
    exportVersion: str


class DeletionRequestCreate(BaseModel):
    reason: Optional[str] = None


class DeletionRequestResponse(BaseModel):
    message: str
    scheduled_deletion_date: datetime


class DeletionStatusResponse(BaseModel):
    status: DeletionStatus
    scheduled_date: Optional[datetime] = None
    days_remaining: Optional[int] = None


class AuditLogEntry(BaseModel):
    id: Optional[str] = None
    user_id: str
    action: str
    details: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True
