"""
Stored-profile security scan.

Looks for injection payloads saved in free-text profile fields and for
privacy settings that expose more than the user probably intends.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List
from app.core.input_validation import detect_threats
from app.modules.privacy.service import merge_privacy_settings
from app.modules.security.schemas import SecurityFinding, SecurityReport

logger = logging.getLogger(__name__)

SCANNED_FIELDS = ("username", "full_name", "about_me", "github_username", "coding_languages")

THREAT_SEVERITY = {
    "XSS": "high",
    "SQL_INJECTION": "medium",
    "COMMAND_INJECTION": "medium",
    "PATH_TRAVERSAL": "medium",
}

_THREAT_TEXT = {
    "XSS": ("Possible XSS payload", "Sanitize input and validate against XSS patterns"),
    "SQL_INJECTION": ("Possible SQL injection payload", "Reject or escape SQL metacharacters in profile text"),
    "COMMAND_INJECTION": ("Possible command injection payload", "Strip shell metacharacters from profile text"),
    "PATH_TRAVERSAL": ("Possible path traversal payload", "Reject relative path segments in profile text"),
}


def build_report(profile_id: str, results: List[SecurityFinding]) -> SecurityReport:
    counts = {s: sum(1 for r in results if r.severity == s) for s in ("critical", "high", "medium", "low")}
    parts = ["Security scan completed."]
    if counts["critical"]:
        parts.append(f"{counts['critical']} critical issues found!")
    if counts["high"]:
        parts.append(f"{counts['high']} high-severity issues found.")
    if counts["medium"]:
        parts.append(f"{counts['medium']} medium-severity issues found.")
    if counts["low"]:
        parts.append(f"{counts['low']} low-severity issues found.")
    if not results:
        parts.append("No security issues detected.")
    return SecurityReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        profile_id=profile_id,
        total_issues=len(results),
        critical_issues=counts["critical"],
        high_issues=counts["high"],
        medium_issues=counts["medium"],
        low_issues=counts["low"],
        results=results,
        summary=" ".join(parts),
    )


class SecurityScanner:
    def _scan_text(self, field: str, value: Any) -> List[SecurityFinding]:
        if isinstance(value, (list, tuple)):
            value = " ".join(str(v) for v in value)
        if not value:
            return []
        findings = []
        for category in detect_threats(str(value)):
            issue, recommendation = _THREAT_TEXT[category]
            findings.append(SecurityFinding(
                category=category.lower(),
                severity=THREAT_SEVERITY[category],
                issue=issue,
                description=f"The {field} field contains content matching {category.replace('_', ' ').lower()} patterns",
                recommendation=recommendation,
                location=field,
            ))
        return findings

    def scan_profile(self, profile: Dict[str, Any]) -> SecurityReport:
        results: List[SecurityFinding] = []
        for field in SCANNED_FIELDS:
            results.extend(self._scan_text(field, profile.get(field)))

        avatar_url = profile.get("avatar_url")
        if avatar_url and not str(avatar_url).lower().startswith("https://"):
            results.append(SecurityFinding(
                category="transport",
                severity="medium",
                issue="Avatar served without HTTPS",
                description="The profile picture URL does not use HTTPS",
                recommendation="Serve profile pictures from the storage bucket over HTTPS",
                location="avatar_url",
            ))

        privacy = merge_privacy_settings(profile.get("privacy_settings"))
        if privacy.showEmail and privacy.profileVisibility == "public":
            results.append(SecurityFinding(
                category="privacy",
                severity="low",
                issue="Email visible on a public profile",
                description="The email address is shown to anyone who can view the profile",
                recommendation="Hide the email address or limit profile visibility",
                location="privacy_settings",
            ))

        report = build_report(str(profile.get("id", "")), results)
        if report.total_issues:
            logger.info(f"Security scan of profile {report.profile_id}: {report.summary}")
        return report
