"""
Custom exception hierarchy for Support Desk.

All exceptions inherit from SupportDeskError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether the user can retry/fix the issue
- context: Additional key-value pairs for debugging
"""

from typing import Any, Optional
from .codes import ErrorCode


class SupportDeskError(Exception):
    """Base exception for all Support Desk errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context for the user
        recoverable: Whether the error can be resolved by user action
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ValidationError(SupportDeskError):
    """Error during input validation."""

    code = ErrorCode.VALIDATION_MISSING_PARAM
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        **context: Any,
    ):
        ctx = {**context}
        if parameter:
            ctx["parameter"] = parameter
        if expected:
            ctx["expected"] = expected
        if received is not None:
            ctx["received"] = received
        super().__init__(message, details, code=code, **ctx)


class NotFoundError(SupportDeskError):
    """Error when a required resource is not found."""

    code = ErrorCode.NOT_FOUND_CHAT
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **context: Any,
    ):
        # Set appropriate code based on resource type
        if resource_type == "agent":
            code = ErrorCode.NOT_FOUND_AGENT
        elif resource_type == "widget":
            code = ErrorCode.NOT_FOUND_WIDGET
        else:
            code = ErrorCode.NOT_FOUND_CHAT

        ctx = {**context}
        if resource_type:
            ctx["resource_type"] = resource_type
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message, details, code=code, **ctx)


class CompletionError(SupportDeskError):
    """The completion API answered, but not with a usable reply."""

    code = ErrorCode.COMPLETION_UNAVAILABLE
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        if error_type == "timeout":
            code = ErrorCode.COMPLETION_TIMEOUT
        elif error_type == "invalid_key":
            code = ErrorCode.COMPLETION_INVALID_KEY
        elif error_type == "invalid":
            code = ErrorCode.COMPLETION_RESPONSE_INVALID
        else:
            code = ErrorCode.COMPLETION_UNAVAILABLE

        super().__init__(message, details, code=code, **context)


class ExternalServiceError(SupportDeskError):
    """Error talking to an external service (completion API, etc.)."""

    code = ErrorCode.EXTERNAL_NETWORK_ERROR
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        if service == "completion":
            code = ErrorCode.EXTERNAL_COMPLETION_FAILED
        else:
            code = ErrorCode.EXTERNAL_NETWORK_ERROR

        ctx = {**context}
        if service:
            ctx["service"] = service
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)


class PersistenceError(SupportDeskError):
    """Error reading or writing the keyed state store."""

    code = ErrorCode.PERSISTENCE_WRITE_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        **context: Any,
    ):
        code = ErrorCode.PERSISTENCE_READ_FAILED if operation == "read" else ErrorCode.PERSISTENCE_WRITE_FAILED

        ctx = {**context}
        if key:
            ctx["key"] = key
        if operation:
            ctx["operation"] = operation
        super().__init__(message, details, code=code, **ctx)


class ChatDisabledError(SupportDeskError):
    """The live chat widget is switched off by the admin."""

    code = ErrorCode.CHAT_DISABLED
    recoverable = False


class SessionStateError(SupportDeskError):
    """A session status transition that the state machine does not allow."""

    code = ErrorCode.INTERNAL_STATE_ERROR
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status: Optional[str] = None,
        event: Optional[str] = None,
        **context: Any,
    ):
        ctx = {**context}
        if status:
            ctx["status"] = status
        if event:
            ctx["event"] = event
        super().__init__(message, details, **ctx)
