"""
Error codes for the Support Desk application.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for Support Desk.

    Categories:
    - VALIDATION_*: Input validation errors
    - NOT_FOUND_*: Resource not found errors
    - COMPLETION_*: Remote completion API errors
    - EXTERNAL_*: External service errors
    - PERSISTENCE_*: Local state storage errors
    - CHAT_*: Chat availability errors
    - INTERNAL_*: Internal/unexpected errors
    """

    # Validation errors (input checking)
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"
    VALIDATION_EMPTY_MESSAGE = "VALIDATION_EMPTY_MESSAGE"
    VALIDATION_INVALID_TYPE = "VALIDATION_INVALID_TYPE"
    VALIDATION_OUT_OF_RANGE = "VALIDATION_OUT_OF_RANGE"
    VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"

    # Not found errors (missing resources)
    NOT_FOUND_CHAT = "NOT_FOUND_CHAT"
    NOT_FOUND_AGENT = "NOT_FOUND_AGENT"
    NOT_FOUND_WIDGET = "NOT_FOUND_WIDGET"

    # Completion API errors (remote reply generation)
    COMPLETION_UNAVAILABLE = "COMPLETION_UNAVAILABLE"
    COMPLETION_TIMEOUT = "COMPLETION_TIMEOUT"
    COMPLETION_INVALID_KEY = "COMPLETION_INVALID_KEY"
    COMPLETION_RESPONSE_INVALID = "COMPLETION_RESPONSE_INVALID"

    # External service errors
    EXTERNAL_COMPLETION_FAILED = "EXTERNAL_COMPLETION_FAILED"
    EXTERNAL_NETWORK_ERROR = "EXTERNAL_NETWORK_ERROR"

    # Persistence errors (keyed state storage)
    PERSISTENCE_READ_FAILED = "PERSISTENCE_READ_FAILED"
    PERSISTENCE_WRITE_FAILED = "PERSISTENCE_WRITE_FAILED"

    # Chat availability
    CHAT_DISABLED = "CHAT_DISABLED"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
    INTERNAL_CONFIG_ERROR = "INTERNAL_CONFIG_ERROR"
    INTERNAL_STATE_ERROR = "INTERNAL_STATE_ERROR"
