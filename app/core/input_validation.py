"""
Generic input validation and sanitization.

Rule-driven checks for free-form input (file names, emails, arbitrary form
fields) plus a threat detector for script, SQL, shell and path traversal
payloads. The security scanner reuses detect_threats.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Pattern, Union

CustomValidator = Callable[[Any], Union[bool, str]]
Sanitizer = Callable[[str], Any]

SANITIZED_MAX_LENGTH = 1000


class ValidationPatterns:
    USERNAME = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
    EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    FULL_NAME = re.compile(r"^[a-zA-Z\s\-']{2,50}$")
    AGE = re.compile(r"^(1[3-9]|[2-9][0-9]|1[01][0-9]|120)$")
    GITHUB_USERNAME = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9\-]){0,38}$")
    URL = re.compile(
        r"^https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)$"
    )
    FILENAME = re.compile(r"^[a-zA-Z0-9._-]+$")
    NO_HTML = re.compile(r"^[^<>]*$")


THREAT_PATTERNS: Dict[str, List[Pattern]] = {
    "XSS": [
        re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
        re.compile(r"javascript:", re.IGNORECASE),
        re.compile(r"on\w+\s*=", re.IGNORECASE),
        re.compile(r"<iframe", re.IGNORECASE),
        re.compile(r"<object", re.IGNORECASE),
        re.compile(r"<embed", re.IGNORECASE),
    ],
    "SQL_INJECTION": [
        re.compile(r"('|(\\')|(--)|(\s*(union|select|insert|update|delete|drop|create|alter|exec|execute)\s+))", re.IGNORECASE),
    ],
    "COMMAND_INJECTION": [
        re.compile(r"(\||&|;|\$\(|`)"),
    ],
    "PATH_TRAVERSAL": [
        re.compile(r"\.\./"),
        re.compile(r"\.\.\\"),
    ],
}

SUSPICIOUS_PATTERNS = [
    re.compile(r"\b(password|passwd|pwd)\b", re.IGNORECASE),
    re.compile(r"\b(admin|administrator|root)\b", re.IGNORECASE),
    re.compile(r"\b(token|key|secret)\b", re.IGNORECASE),
    re.compile(r"\b(hack|exploit|vulnerability)\b", re.IGNORECASE),
]

DANGEROUS_UPLOAD_EXTENSIONS = (
    ".exe", ".bat", ".cmd", ".scr", ".pif", ".com", ".jar",
    ".php", ".asp", ".jsp", ".js", ".vbs", ".ps1", ".sh",
)

RESERVED_USERNAMES = ("admin", "root", "api", "www", "mail", "support", "help", "devrecruit")


@dataclass
class ValidationRule:
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[Pattern] = None
    custom_validator: Optional[CustomValidator] = None
    sanitizer: Optional[Sanitizer] = None
    # Skip the threat scan for fields whose pattern already pins the alphabet.
    check_threats: bool = True


@dataclass
class FieldValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    sanitized_value: Any = ""
    warnings: List[str] = field(default_factory=list)


def format_field_name(field_name: str) -> str:
    """fullName -> Full Name, full_name -> Full name."""
    spaced = re.sub(r"([A-Z])", r" \1", field_name)
    spaced = spaced[:1].upper() + spaced[1:]
    return spaced.replace("_", " ")


def detect_threats(value: str) -> List[str]:
    return [
        category
        for category, patterns in THREAT_PATTERNS.items()
        if any(p.search(value) for p in patterns)
    ]


def contains_suspicious_content(value: str) -> bool:
    return any(p.search(value) for p in SUSPICIOUS_PATTERNS)


def default_sanitize(value: str) -> str:
    cleaned = re.sub(r"\s+", " ", value.strip())
    cleaned = re.sub(r"[<>]", "", cleaned)
    return cleaned[:SANITIZED_MAX_LENGTH]


def _pattern_error(field_name: str, pattern: Pattern) -> str:
    label = format_field_name(field_name)
    messages = {
        ValidationPatterns.USERNAME: f"{label} must be 3-20 characters and contain only letters, numbers, and underscores",
        ValidationPatterns.EMAIL: f"{label} must be a valid email address",
        ValidationPatterns.FULL_NAME: f"{label} must be 2-50 characters and contain only letters, spaces, hyphens, and apostrophes",
        ValidationPatterns.AGE: f"{label} must be between 13 and 120",
        ValidationPatterns.GITHUB_USERNAME: f"{label} must be a valid GitHub username",
        ValidationPatterns.URL: f"{label} must be a valid URL",
    }
    return messages.get(pattern, f"{label} format is invalid")


class InputValidator:
    def validate_field(self, value: Any, field_name: str, rule: ValidationRule) -> FieldValidationResult:
        label = format_field_name(field_name)
        raw = value
        text = "" if value is None or value is False else str(value).strip()
        if isinstance(value, (list, tuple)):
            text = ",".join(str(v) for v in value).strip()

        if rule.required and not text:
            return FieldValidationResult(is_valid=False, errors=[f"{label} is required"])
        if not text:
            return FieldValidationResult(is_valid=True)

        errors: List[str] = []
        warnings: List[str] = []

        if rule.min_length and len(text) < rule.min_length:
            errors.append(f"{label} must be at least {rule.min_length} characters")
        if rule.max_length and len(text) > rule.max_length:
            errors.append(f"{label} must be no more than {rule.max_length} characters")
        if rule.pattern is not None and not rule.pattern.match(text):
            errors.append(_pattern_error(field_name, rule.pattern))
        if rule.check_threats and detect_threats(text):
            errors.append(f"{label} contains invalid characters")

        if rule.custom_validator is not None:
            outcome = rule.custom_validator(raw if isinstance(raw, (list, tuple)) else text)
            if isinstance(outcome, str):
                errors.append(outcome)
            elif not outcome:
                errors.append(f"{label} is invalid")

        sanitized = rule.sanitizer(text) if rule.sanitizer else default_sanitize(text)

        if contains_suspicious_content(text):
            warnings.append(f"{label} contains potentially suspicious content")

        return FieldValidationResult(
            is_valid=not errors,
            errors=errors,
            sanitized_value=sanitized,
            warnings=warnings,
        )

    def validate_schema(self, data: Dict[str, Any], schema: Dict[str, ValidationRule]) -> FieldValidationResult:
        errors: List[str] = []
        warnings: List[str] = []
        sanitized: Dict[str, Any] = {}
        for field_name, rule in schema.items():
            result = self.validate_field(data.get(field_name), field_name, rule)
            errors.extend(result.errors)
            warnings.extend(result.warnings)
            sanitized[field_name] = result.sanitized_value
        return FieldValidationResult(
            is_valid=not errors,
            errors=errors,
            sanitized_value=sanitized,
            warnings=warnings,
        )


def _age_in_range(value: str) -> Union[bool, str]:
    try:
        age = int(value)
    except ValueError:
        return "Please enter a valid age"
    if age < 13:
        return "You must be at least 13 years old to use DevRecruit"
    if age > 120:
        return "Please enter a valid age"
    return True


def _safe_upload_extension(value: str) -> bool:
    dot = value.rfind(".")
    ext = value[dot:].lower() if dot != -1 else ""
    return ext not in DANGEROUS_UPLOAD_EXTENSIONS


def _username_shape(value: str) -> Union[bool, str]:
    if value.startswith("_") or value.endswith("_"):
        return "Username cannot start or end with underscore"
    if "__" in value:
        return "Username cannot contain consecutive underscores"
    if value.lower() in RESERVED_USERNAMES:
        return "This username is reserved"
    return True


def _email_lengths(value: str) -> Union[bool, str]:
    if len(value) > 254:
        return "Email address is too long"
    if len(value.split("@")[0]) > 64:
        return "Email username part is too long"
    return True


class ValidationSchemas:
    USER_PROFILE = {
        "username": ValidationRule(
            required=True, min_length=3, max_length=20, pattern=ValidationPatterns.USERNAME,
            sanitizer=lambda v: re.sub(r"[^a-z0-9_]", "", v.lower()),
        ),
        "full_name": ValidationRule(
            required=True, min_length=2, max_length=50, pattern=ValidationPatterns.FULL_NAME,
            check_threats=False,
        ),
        "email": ValidationRule(
            required=True, pattern=ValidationPatterns.EMAIL,
            sanitizer=lambda v: v.lower().strip(),
        ),
        "age": ValidationRule(required=True, pattern=ValidationPatterns.AGE, custom_validator=_age_in_range),
        "github_username": ValidationRule(pattern=ValidationPatterns.GITHUB_USERNAME),
    }

    ONBOARDING = {
        "username": ValidationRule(required=True, min_length=3, max_length=20, pattern=ValidationPatterns.USERNAME),
        "fullName": ValidationRule(
            required=True, min_length=2, max_length=50, pattern=ValidationPatterns.FULL_NAME,
            check_threats=False,
        ),
        "age": ValidationRule(required=True, pattern=ValidationPatterns.AGE, custom_validator=lambda v: v.isdigit() and 13 <= int(v) <= 120),
        "educationStatus": ValidationRule(
            required=True,
            custom_validator=lambda v: v in ("highschool", "college", "professional", "not_in_school"),
        ),
        "codingLanguages": ValidationRule(
            required=True,
            custom_validator=lambda v: isinstance(v, (list, tuple)) and 0 < len(v) <= 10,
            sanitizer=lambda v: [part for part in v.split(",") if part],
        ),
    }

    FILE_UPLOAD = {
        "filename": ValidationRule(
            required=True, max_length=255, pattern=ValidationPatterns.FILENAME,
            custom_validator=_safe_upload_extension,
        ),
    }


input_validator = InputValidator()


def validate_user_profile(data: Dict[str, Any]) -> FieldValidationResult:
    return input_validator.validate_schema(data, ValidationSchemas.USER_PROFILE)


def validate_onboarding(data: Dict[str, Any]) -> FieldValidationResult:
    return input_validator.validate_schema(data, ValidationSchemas.ONBOARDING)


def validate_file_upload(filename: str) -> FieldValidationResult:
    return input_validator.validate_field(filename, "filename", ValidationSchemas.FILE_UPLOAD["filename"])


def validate_username(username: str) -> FieldValidationResult:
    return input_validator.validate_field(username, "username", ValidationRule(
        required=True, min_length=3, max_length=20, pattern=ValidationPatterns.USERNAME,
        sanitizer=lambda v: re.sub(r"[^a-z0-9_]", "", v.lower()),
        custom_validator=_username_shape,
    ))


def validate_email(email: str) -> FieldValidationResult:
    return input_validator.validate_field(email, "email", ValidationRule(
        required=True, pattern=ValidationPatterns.EMAIL,
        sanitizer=lambda v: v.lower().strip(),
        custom_validator=_email_lengths,
    ))
