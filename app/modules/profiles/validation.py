"""
Profile and onboarding field rules.

These are the rules the profile editor and the onboarding flow enforce before
anything is written to the profiles table. Each validator returns a
ValidationResult instead of raising so callers can collect every problem at once.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

FULL_NAME_MAX_LENGTH = 50
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 22
AGE_MIN = 13
AGE_MAX = 120
ABOUT_ME_MIN_LENGTH = 10
ABOUT_ME_MAX_LENGTH = 500
MAX_CODING_LANGUAGES = 15
ONBOARDING_STEPS = 4

EDUCATION_STATUSES = ("highschool", "college", "professional", "not_in_school")

RESERVED_USERNAMES = frozenset({
    "admin", "administrator", "root", "devrecruit", "api", "www", "mail",
    "support", "help", "info", "contact", "about", "team", "staff",
    "moderator", "test", "demo", "example", "null", "undefined",
})

_NAME_CHARS = re.compile(r"^[a-zA-Z\s\-']+$")
_USERNAME_CHARS = re.compile(r"^[a-z0-9_-]+$")
_USERNAME_INVALID = re.compile(r"[^a-z0-9_-]")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_REPEATED_CHAR = re.compile(r"(.)\1{4,}")
_NO_LETTERS = re.compile(r"^[^a-zA-Z]*$")


@dataclass
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    suggestion: Optional[str] = None


@dataclass
class ProfileValidation:
    full_name: ValidationResult
    username: ValidationResult
    age: ValidationResult
    about_me: ValidationResult
    education_status: ValidationResult
    coding_languages: ValidationResult

    @property
    def overall(self) -> bool:
        return all(r.is_valid for r in self.fields().values())

    def fields(self) -> Dict[str, ValidationResult]:
        return {
            "full_name": self.full_name,
            "username": self.username,
            "age": self.age,
            "about_me": self.about_me,
            "education_status": self.education_status,
            "coding_languages": self.coding_languages,
        }


def _ok() -> ValidationResult:
    return ValidationResult(is_valid=True)


def _fail(error: str, suggestion: Optional[str] = None) -> ValidationResult:
    return ValidationResult(is_valid=False, error=error, suggestion=suggestion)


def validate_full_name(name: Optional[str]) -> ValidationResult:
    """First and last name, letters/spaces/hyphens/apostrophes, each part 2+ characters."""
    if not name or not name.strip():
        return _fail("Full name is required")

    trimmed = name.strip()
    words = trimmed.split()
    if len(words) < 2:
        return _fail("Please enter your first and last name", "Example: John Smith")
    if not _NAME_CHARS.match(trimmed):
        return _fail("Name can only contain letters, spaces, hyphens, and apostrophes")
    if any(len(word.replace("-", "").replace("'", "")) < 2 for word in words):
        return _fail("Each part of your name must be at least 2 characters long")
    if len(trimmed) > FULL_NAME_MAX_LENGTH:
        return _fail("Full name must be less than 50 characters")
    return _ok()


def format_full_name(name: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.strip().split())


def validate_username(username: Optional[str]) -> ValidationResult:
    if not username or not username.strip():
        return _fail("Username is required")

    candidate = username.strip().lower()
    if len(candidate) < USERNAME_MIN_LENGTH:
        return _fail("Username must be at least 3 characters long")
    if len(candidate) > USERNAME_MAX_LENGTH:
        return _fail("Username must be less than 22 characters long")
    if not _USERNAME_CHARS.match(candidate):
        return _fail("Username can only contain letters, numbers, underscores, and hyphens")
    if not candidate[0].isalnum():
        return _fail("Username must start with a letter or number")
    if candidate[-1] in "-_":
        return _fail("Username cannot end with a hyphen or underscore")
    if candidate in RESERVED_USERNAMES:
        return _fail("This username is reserved. Please choose a different one.")
    return _ok()


def format_username(username: str) -> str:
    return _USERNAME_INVALID.sub("", username.strip().lower())


def parse_age(age: Any) -> Optional[int]:
    """Leading-integer parse: "25 years" -> 25, "abc" -> None."""
    if isinstance(age, bool):
        return None
    if isinstance(age, int):
        return age
    if isinstance(age, float):
        return int(age)
    match = _LEADING_INT.match(str(age))
    return int(match.group(1)) if match else None


def validate_age(age: Any) -> ValidationResult:
    if age is None or age == "" or age == 0:
        return _fail("Age is required")

    value = parse_age(age)
    if value is None:
        return _fail("Please enter a valid age")
    if value < AGE_MIN:
        return _fail("You must be at least 13 years old to use DevRecruit")
    if value > AGE_MAX:
        return _fail("Please enter a realistic age")
    return _ok()


def validate_about_me(about_me: Optional[str]) -> ValidationResult:
    """Optional bio; when present it must be 10-500 characters of real text."""
    if not about_me or not about_me.strip():
        return _ok()

    trimmed = about_me.strip()
    if len(trimmed) > ABOUT_ME_MAX_LENGTH:
        return _fail(f"About Me must be less than 500 characters (currently {len(trimmed)})")
    if len(trimmed) < ABOUT_ME_MIN_LENGTH:
        return _fail(
            "If provided, About Me should be at least 10 characters long",
            "Tell us about your coding interests and experience",
        )
    if _REPEATED_CHAR.search(trimmed) or _NO_LETTERS.match(trimmed):
        return _fail("Please write a meaningful description about yourself")
    return _ok()


def validate_education_status(status: Optional[str]) -> ValidationResult:
    if not status or not status.strip():
        return _fail("Please select your education status")
    if status not in EDUCATION_STATUSES:
        return _fail("Please select a valid education status")
    return _ok()


def validate_coding_languages(languages: Optional[Sequence[str]]) -> ValidationResult:
    if not languages:
        return _fail("Please select at least one coding language")
    if len(languages) > MAX_CODING_LANGUAGES:
        return _fail("Please select no more than 15 coding languages to keep your profile focused")
    return _ok()


def validate_complete_profile(profile: Dict[str, Any]) -> ProfileValidation:
    return ProfileValidation(
        full_name=validate_full_name(profile.get("full_name") or ""),
        username=validate_username(profile.get("username") or ""),
        age=validate_age(profile.get("age") or ""),
        about_me=validate_about_me(profile.get("about_me") or ""),
        education_status=validate_education_status(profile.get("education_status") or ""),
        coding_languages=validate_coding_languages(profile.get("coding_languages") or []),
    )


def validate_onboarding_step(step: int, data: Dict[str, Any]) -> Dict[str, ValidationResult]:
    """Field results for one step of the onboarding flow.

    Step 4 only requires one language; the 15 language cap is applied when the
    onboarding is saved.
    """
    if step == 1:
        return {
            "full_name": validate_full_name(data.get("full_name") or ""),
            "username": validate_username(data.get("username") or ""),
        }
    if step == 2:
        return {"age": validate_age(data.get("age") or "")}
    if step == 3:
        return {"education_status": validate_education_status(data.get("education_status") or "")}
    if step == 4:
        if data.get("coding_languages"):
            return {"coding_languages": _ok()}
        return {"coding_languages": _fail("Please select at least one coding language")}
    return {"step": _fail(f"Onboarding has steps 1 to {ONBOARDING_STEPS}")}


def collect_errors(results: Dict[str, ValidationResult]) -> List[str]:
    labels = {
        "full_name": "Full Name",
        "username": "Username",
        "age": "Age",
        "about_me": "About Me",
        "education_status": "Education",
        "coding_languages": "Languages",
    }
    return [
        f"{labels.get(name, name)}: {result.error}"
        for name, result in results.items()
        if not result.is_valid
    ]


def character_count_info(text: str, max_length: int) -> Dict[str, Any]:
    length = len(text)
    remaining = max_length - length
    if remaining < 0:
        level = "over_limit"
    elif remaining < max_length * 0.1:
        level = "near_limit"
    elif length > 0:
        level = "ok"
    else:
        level = "empty"
    return {
        "current": length,
        "max": max_length,
        "remaining": remaining,
        "level": level,
        "is_over_limit": remaining < 0,
    }
