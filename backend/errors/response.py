"""
Standard error response builders for Support Desk.

Provides consistent response formats for error handling across the
widget and admin APIs.
"""

from typing import Any, Optional
from .codes import ErrorCode
from .exceptions import SupportDeskError


# HTTP status per error category prefix (first match wins)
_STATUS_BY_PREFIX = (
    ("VALIDATION_", 400),
    ("NOT_FOUND_", 404),
    ("COMPLETION_", 502),
    ("EXTERNAL_", 502),
    ("PERSISTENCE_", 500),
    ("CHAT_DISABLED", 503),
)


def error_response(error: SupportDeskError | Exception, action: Optional[str] = None, include_context: bool = True) -> dict:
    """Build a standard error response dictionary.

    Args:
        error: The exception to convert to a response
        action: Optional action name for context (e.g. "validate_api_key")
        include_context: Whether to include the context dict (disable for privacy)

    Returns:
        Standard error response dict with success=False

    Example:
        >>> from errors import ValidationError, error_response
        >>> err = ValidationError("API key is required", parameter="api_key")
        >>> error_response(err, action="validate_api_key")
        {
            "success": False,
            "error": {
                "code": "VALIDATION_MISSING_PARAM",
                "message": "API key is required",
                "details": None,
                "action": "validate_api_key",
                "recoverable": True,
                "context": {"parameter": "api_key"}
            }
        }
    """
    if isinstance(error, SupportDeskError):
        return {
            "success": False,
            "error": {
                "code": error.code.value,
                "message": error.message,
                "details": error.details,
                "action": action,
                "recoverable": error.recoverable,
                "context": error.context if include_context else None,
            },
        }

    # Fallback for non-Support Desk exceptions
    return {
        "success": False,
        "error": {
            "code": ErrorCode.INTERNAL_UNEXPECTED.value,
            "message": str(error),
            "details": None,
            "action": action,
            "recoverable": False,
            "context": None,
        },
    }


def success_response(data: Optional[dict] = None, **kwargs: Any) -> dict:
    """Build a standard success response dictionary.

    Args:
        data: Optional data dict to include in response
        **kwargs: Additional key-value pairs to include at top level

    Returns:
        Standard success response dict with success=True

    Example:
        >>> success_response(deleted=3)
        {"success": True, "deleted": 3}
    """
    response = {"success": True}

    if data:
        response.update(data)
    if kwargs:
        response.update(kwargs)

    return response


def http_status_for(error: SupportDeskError | Exception) -> int:
    """Map an error to the HTTP status the API answers with."""
    if not isinstance(error, SupportDeskError):
        return 500
    code = error.code.value
    for prefix, status in _STATUS_BY_PREFIX:
        if code.startswith(prefix):
            return status
    return 500


def format_error_for_user(error: SupportDeskError | Exception) -> str:
    """Format an error as a short message the admin UI can show as-is.

    Args:
        error: The exception to format

    Returns:
        Formatted error string
    """
    if isinstance(error, SupportDeskError):
        if error.details:
            return f"{error.message}: {error.details}"
        return error.message

    return f"Unexpected error: {str(error)}"
