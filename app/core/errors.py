"""
Error categorization for user-facing responses.

Every unexpected failure is bucketed into a category and severity, turned into a
message that is safe to show to the user, and kept in a small in-memory ring so
operators can inspect recent failures through the monitoring routes.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from fastapi import HTTPException

from app.config import settings

logger = logging.getLogger(__name__)

MAX_ERROR_LOGS = 100


class ErrorCategory(str, Enum):
    AUTHENTICATION = "auth"
    AUTHORIZATION = "authz"
    VALIDATION = "validation"
    NETWORK = "network"
    DATABASE = "database"
    FILE_UPLOAD = "upload"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    user_id: Optional[str] = None
    action: Optional[str] = None
    component: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorResponse:
    user_message: str
    should_retry: bool
    error_code: str


@dataclass
class ErrorLog:
    timestamp: str
    category: ErrorCategory
    severity: ErrorSeverity
    user_message: str
    technical_error: str
    context: ErrorContext


def _status_of(error: Any) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None


def _to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while value:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
    return out or "0"


class ErrorHandler:
    def __init__(self, max_logs: int = MAX_ERROR_LOGS):
        self._logs: Deque[ErrorLog] = deque(maxlen=max_logs)

    def handle_error(
        self,
        error: Any,
        context: Optional[ErrorContext] = None,
        custom_user_message: Optional[str] = None,
    ) -> ErrorResponse:
        context = context or ErrorContext()
        category = self.categorize(error)
        severity = self.determine_severity(error, category)
        user_message = custom_user_message or self.user_message(error, category)
        technical = self.technical_message(error)

        self._logs.append(ErrorLog(
            timestamp=datetime.now(timezone.utc).isoformat(),
            category=category,
            severity=severity,
            user_message=user_message,
            technical_error=technical,
            context=context,
        ))

        log_level = logging.ERROR if severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL) else logging.WARNING
        logger.log(
            log_level,
            "[%s/%s] %s (action=%s component=%s user=%s)",
            category.value, severity.value, technical,
            context.action, context.component, context.user_id,
        )
        if settings.is_production and severity == ErrorSeverity.CRITICAL:
            logger.critical("CRITICAL ERROR: %s", technical)

        return ErrorResponse(
            user_message=user_message,
            should_retry=self.should_retry(category, error),
            error_code=self.error_code(category, severity),
        )

    def to_http_exception(
        self,
        error: Any,
        context: Optional[ErrorContext] = None,
        status_code: int = 500,
    ) -> HTTPException:
        """Record the error and wrap its user-safe message in an HTTPException."""
        response = self.handle_error(error, context)
        return HTTPException(status_code=status_code, detail=response.user_message)

    @staticmethod
    def technical_message(error: Any) -> str:
        if isinstance(error, str):
            return error
        if isinstance(error, HTTPException):
            return str(error.detail)
        if isinstance(error, dict):
            for key in ("message", "error", "details"):
                if error.get(key):
                    return str(error[key])
            return "Unknown error"
        for attr in ("message", "details"):
            value = getattr(error, attr, None)
            if value:
                return str(value)
        if error is not None and str(error):
            return str(error)
        return "Unknown error"

    def categorize(self, error: Any) -> ErrorCategory:
        message = self.technical_message(error).lower()
        status = _status_of(error)

        if any(w in message for w in ("auth", "login", "token", "session", "unauthorized")) or status == 401:
            return ErrorCategory.AUTHENTICATION
        if any(w in message for w in ("permission", "forbidden", "access denied")) or status == 403:
            return ErrorCategory.AUTHORIZATION
        if any(w in message for w in ("validation", "invalid", "required", "format", "age", "username")) or status == 400:
            return ErrorCategory.VALIDATION
        if any(w in message for w in ("network", "fetch", "connection", "timeout", "cors")) or (status is not None and status >= 500):
            return ErrorCategory.NETWORK
        if any(w in message for w in ("database", "supabase", "postgres", "sql", "relation", "column")):
            return ErrorCategory.DATABASE
        if any(w in message for w in ("upload", "file", "image", "storage", "bucket", "size")):
            return ErrorCategory.FILE_UPLOAD
        if any(w in message for w in ("system", "server", "internal")) or status == 500:
            return ErrorCategory.SYSTEM
        return ErrorCategory.UNKNOWN

    def determine_severity(self, error: Any, category: ErrorCategory) -> ErrorSeverity:
        message = self.technical_message(error)
        status = _status_of(error)

        if category == ErrorCategory.AUTHENTICATION and "Missing" in message:
            return ErrorSeverity.CRITICAL
        if category == ErrorCategory.DATABASE and status == 500:
            return ErrorSeverity.CRITICAL
        if category in (ErrorCategory.AUTHORIZATION, ErrorCategory.SYSTEM) or (status is not None and status >= 500):
            return ErrorSeverity.HIGH
        if category in (ErrorCategory.AUTHENTICATION, ErrorCategory.DATABASE, ErrorCategory.NETWORK):
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.LOW

    def user_message(self, error: Any, category: ErrorCategory) -> str:
        message = self.technical_message(error)
        status = _status_of(error)

        if category == ErrorCategory.AUTHENTICATION:
            if "Missing" in message:
                return "Please log in to continue."
            return "Authentication failed. Please try logging in again."
        if category == ErrorCategory.AUTHORIZATION:
            return "You don't have permission to perform this action."
        if category == ErrorCategory.VALIDATION:
            if "age" in message:
                return "Please enter a valid age (13 or older)."
            if "username" in message:
                return "Please enter a valid username (3+ characters, letters and numbers only)."
            if "required" in message:
                return "Please fill in all required fields."
            if "email" in message:
                return "Please enter a valid email address."
            return "Please check your input and try again."
        if category == ErrorCategory.NETWORK:
            if status is not None and status >= 500:
                return "Our servers are experiencing issues. Please try again in a few minutes."
            return "Connection problem. Please check your internet and try again."
        if category == ErrorCategory.DATABASE:
            return "We're having trouble saving your data. Please try again."
        if category == ErrorCategory.FILE_UPLOAD:
            if "size" in message:
                return "File is too large. Please use an image under 5MB."
            if "format" in message or "type" in message:
                return "Invalid file format. Please use JPG or PNG images only."
            if "permission" in message:
                return "Upload failed. Please try logging in again."
            return "Upload failed. Please try again with a different image."
        if category == ErrorCategory.SYSTEM:
            return "Something went wrong on our end. Please try again in a few minutes."
        return "An unexpected error occurred. Please try again."

    def should_retry(self, category: ErrorCategory, error: Any) -> bool:
        if category in (ErrorCategory.VALIDATION, ErrorCategory.AUTHORIZATION):
            return False
        if category == ErrorCategory.AUTHENTICATION and "Invalid credentials" in self.technical_message(error):
            return False
        return True

    @staticmethod
    def error_code(category: ErrorCategory, severity: ErrorSeverity) -> str:
        return f"{category.value.upper()}_{severity.value.upper()}_{_to_base36(int(time.time() * 1000))}"

    def recent_errors(self, limit: int = 10) -> List[ErrorLog]:
        if limit <= 0:
            return []
        return list(self._logs)[-limit:]

    def stats(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for log in self._logs:
            key = f"{log.category.value}_{log.severity.value}"
            out[key] = out.get(key, 0) + 1
        return out

    def clear(self) -> None:
        self._logs.clear()


error_handler = ErrorHandler()
