"""
Error handling decorators and utilities for Support Desk.

Provides decorators for consistent error handling across admin actions.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .exceptions import SupportDeskError
from .response import error_response

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])


def handle_action_errors(action: str, logger: Optional[logging.Logger] = None):
    """Decorator that catches exceptions and returns standard error responses.

    Wraps a function to catch all exceptions, log them, and return a
    standardized error response dictionary.

    Args:
        action: Name of the action for error response context
        logger: Optional logger instance (defaults to action-specific logger)

    Returns:
        Decorated function that returns error_response on exception

    Example:
        >>> @handle_action_errors("export_chats")
        ... def export(...):
        ...     if not chats:
        ...         raise NotFoundError("Nothing to export")
        ...     return {"success": True, "chats": chats}
    """

    def decorator(func: F) -> F:
        # Use provided logger or create one based on action name
        log = logger or logging.getLogger(f"supportdesk.{action}")

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> dict:
            try:
                return func(*args, **kwargs)
            except SupportDeskError as e:
                log.warning(f"[{action}] {e.code.value}: {e.message}")
                return error_response(e, action=action)
            except Exception as e:
                log.error(f"[{action}] Unexpected error: {e}", exc_info=True)
                return error_response(e, action=action)

        return wrapper  # type: ignore

    return decorator


def handle_async_action_errors(action: str, logger: Optional[logging.Logger] = None):
    """Async version of handle_action_errors decorator.

    Same behavior as handle_action_errors but for async functions.

    Args:
        action: Name of the action for error response context
        logger: Optional logger instance (defaults to action-specific logger)

    Returns:
        Decorated async function that returns error_response on exception
    """

    def decorator(func: F) -> F:
        log = logger or logging.getLogger(f"supportdesk.{action}")

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> dict:
            try:
                return await func(*args, **kwargs)
            except SupportDeskError as e:
                log.warning(f"[{action}] {e.code.value}: {e.message}")
                return error_response(e, action=action)
            except Exception as e:
                log.error(f"[{action}] Unexpected error: {e}", exc_info=True)
                return error_response(e, action=action)

        return wrapper  # type: ignore

    return decorator


def log_error(
    logger: logging.Logger,
    error: Exception,
    context: Optional[str] = None,
    include_traceback: bool = True,
    level: int = logging.ERROR,
    **extra: Any,
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace
        level: Log level (recovered errors are logged as warnings)
        **extra: Passed through as LogRecord attributes

    Example:
        >>> log_error(logger, err, context="resolver")
        # Logs: "[resolver] EXTERNAL_COMPLETION_FAILED: Completion service unavailable"
    """
    if isinstance(error, SupportDeskError):
        message = f"{error.code.value}: {error.message}"
    else:
        message = str(error)

    if context:
        message = f"[{context}] {message}"

    logger.log(level, message, exc_info=include_traceback, extra=extra or None)
