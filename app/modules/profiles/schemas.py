from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union, Literal
from datetime import datetime

EducationStatus = Literal["highschool", "college", "professional", "not_in_school"]
AccountStatus = Literal["active", "pending_deletion", "suspended", "deleted"]


class ProfileResponse(BaseModel):
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    about_me: Optional[str] = None
    age: Optional[int] = None
    education_status: Optional[EducationStatus] = None
    coding_languages: List[str] = []
    github_username: Optional[str] = None
    github_repository_count: int = 0
    github_commit_count: int = 0
    onboarding_completed: bool = False
    account_status: AccountStatus = "active"
    privacy_settings: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    full_name: Optional[str] = None
    about_me: Optional[str] = None
    age: Optional[Union[int, str]] = None
    education_status: Optional[str] = None
    coding_languages: Optional[List[str]] = None


class OnboardingRequest(BaseModel):
    username: str = ""
    full_name: str = ""
    age: Union[int, str] = ""
    education_status: str = ""
    coding_languages: List[str] = []


class OnboardingResponse(BaseModel):
    profile: ProfileResponse
    languages_truncated: bool = False
    github_stats_refreshed: bool = False
    message: str


class OnboardingStatusResponse(BaseModel):
    onboarding_completed: bool
    next_step: Optional[int] = None


class StepValidationRequest(BaseModel):
    username: Optional[str] = None
    full_name: Optional[str] = None
    age: Optional[Union[int, str]] = None
    education_status: Optional[str] = None
    coding_languages: Optional[List[str]] = None


class FieldResult(BaseModel):
    is_valid: bool
    error: Optional[str] = None
    suggestion: Optional[str] = None


class ValidationReport(BaseModel):
    is_valid: bool
    fields: Dict[str, FieldResult]
    errors: List[str] = []


class CharacterCountResponse(BaseModel):
    current: int
    max: int
    remaining: int
    level: str
    is_over_limit: bool


class CharacterCountRequest(BaseModel):
    text: str = ""
    max_length: int = Field(default=500, gt=0)
