"""
Support Desk Error Handling Module

Provides standardized error codes, exceptions, and response builders
for consistent error handling across the application.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        SupportDeskError,
        ValidationError,
        NotFoundError,
        CompletionError,
        ExternalServiceError,
        PersistenceError,
        ChatDisabledError,
        SessionStateError,

        # Response builders
        error_response,
        success_response,
        http_status_for,
        format_error_for_user,

        # Decorators
        handle_action_errors,
        handle_async_action_errors,
        log_error,
    )

Example:
    from errors import handle_async_action_errors, ValidationError

    @handle_async_action_errors("validate_api_key")
    async def validate(api_key):
        if not api_key.strip():
            raise ValidationError("API key is required", parameter="api_key")
        ...
        return {"success": True, "message": "API key is valid"}
"""

from .codes import ErrorCode
from .exceptions import (
    SupportDeskError,
    ValidationError,
    NotFoundError,
    CompletionError,
    ExternalServiceError,
    PersistenceError,
    ChatDisabledError,
    SessionStateError,
)
from .response import (
    error_response,
    success_response,
    http_status_for,
    format_error_for_user,
)
from .handlers import (
    handle_action_errors,
    handle_async_action_errors,
    log_error,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "SupportDeskError",
    "ValidationError",
    "NotFoundError",
    "CompletionError",
    "ExternalServiceError",
    "PersistenceError",
    "ChatDisabledError",
    "SessionStateError",
    # Response builders
    "error_response",
    "success_response",
    "http_status_for",
    "format_error_for_user",
    # Decorators
    "handle_action_errors",
    "handle_async_action_errors",
    "log_error",
]
