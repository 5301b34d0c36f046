from pydantic import BaseModel
from typing import Any, Dict, List, Literal, Optional

Severity = Literal["low", "medium", "high", "critical"]


class SecurityFinding(BaseModel):
    category: str
    severity: Severity
    issue: str
    description: str
    recommendation: str
    location: Optional[str] = None


class SecurityReport(BaseModel):
    timestamp: str
    profile_id: str
    total_issues: int
    critical_issues: int
    high_issues: int
    medium_issues: int
    low_issues: int
    results: List[SecurityFinding]
    summary: str


class MonitoringSummary(BaseModel):
    requests: Dict[str, Dict[str, float]]
    security_events: Dict[str, int]
    recent_security_events: List[Dict[str, Any]]
    errors: Dict[str, int]
