from fastapi import HTTPException

from app.core.errors import ErrorCategory, ErrorContext, ErrorHandler, ErrorSeverity


class StatusError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


def test_categorize_by_message_and_status():
    handler = ErrorHandler()
    assert handler.categorize("Invalid token") == ErrorCategory.AUTHENTICATION
    assert handler.categorize(StatusError("nope", 403)) == ErrorCategory.AUTHORIZATION
    assert handler.categorize("username is required") == ErrorCategory.VALIDATION
    assert handler.categorize(StatusError("bad gateway", 502)) == ErrorCategory.NETWORK
    assert handler.categorize("relation profiles does not exist") == ErrorCategory.DATABASE
    assert handler.categorize("bucket not found") == ErrorCategory.FILE_UPLOAD
    assert handler.categorize("something odd") == ErrorCategory.UNKNOWN


def test_severity():
    handler = ErrorHandler()
    assert handler.determine_severity("Missing session", ErrorCategory.AUTHENTICATION) == ErrorSeverity.CRITICAL
    assert handler.determine_severity("denied", ErrorCategory.AUTHORIZATION) == ErrorSeverity.HIGH
    assert handler.determine_severity("timeout", ErrorCategory.NETWORK) == ErrorSeverity.MEDIUM
    assert handler.determine_severity("bad", ErrorCategory.VALIDATION) == ErrorSeverity.LOW


def test_handle_error_records_log_and_code():
    handler = ErrorHandler()
    response = handler.handle_error("age must be a number", ErrorContext(action="onboarding"))
    assert response.user_message == "Please enter a valid age (13 or older)."
    assert response.should_retry is False
    assert response.error_code.startswith("VALIDATION_LOW_")
    logs = handler.recent_errors()
    assert len(logs) == 1
    assert logs[0].context.action == "onboarding"
    assert handler.stats() == {"validation_low": 1}


def test_custom_user_message_wins():
    response = ErrorHandler().handle_error("connection reset", custom_user_message="Try later")
    assert response.user_message == "Try later"
    assert response.should_retry is True


def test_technical_message_sources():
    assert ErrorHandler.technical_message({"error": "boom"}) == "boom"
    assert ErrorHandler.technical_message(HTTPException(status_code=400, detail="bad")) == "bad"
    assert ErrorHandler.technical_message(None) == "Unknown error"


def test_log_buffer_is_bounded():
    handler = ErrorHandler(max_logs=3)
    for i in range(5):
        handler.handle_error(f"failure {i}")
    assert len(handler.recent_errors(10)) == 3
    assert handler.recent_errors(0) == []
    handler.clear()
    assert handler.recent_errors() == []


def test_to_http_exception_uses_user_message():
    exc = ErrorHandler().to_http_exception("database connection refused", status_code=503)
    assert isinstance(exc, HTTPException)
    assert exc.status_code == 503
    assert exc.detail == "Connection problem. Please check your internet and try again."
