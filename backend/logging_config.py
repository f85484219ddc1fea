"""
Support Desk Logging Configuration - Color-Coded Console Logs

Provides:
- ColorFormatter: ANSI color-coded log output
- Helper functions: log_message_in, log_reply, log_timer, log_transition, log_activity
- setup_logging(): Configure application logging

Usage:
    from logging_config import setup_logging, log_message_in, log_timer
    setup_logging()
    logger = logging.getLogger(__name__)
    log_message_in(logger, "What does a VPS cost?", chat_id="MC-...")
"""

import logging
import sys

# ANSI color codes
COLORS = {
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
    "DIM": "\033[2m",
    # Event colors
    "MSG_IN": "\033[96m",  # Cyan - incoming user message
    "MSG_OUT": "\033[92m",  # Green - agent reply
    "TIMER": "\033[93m",  # Yellow - timer scheduling/firing
    "STATE": "\033[95m",  # Magenta - session status transitions
    "ERROR": "\033[91m",  # Red - errors
    "WARN": "\033[33m",  # Orange/Yellow - warnings
    "DEBUG": "\033[90m",  # Gray - debug info
}

# Activity kinds shown in the admin activity log
ACTIVITY_INFO = "info"
ACTIVITY_SUCCESS = "success"
ACTIVITY_ERROR = "error"

_ACTIVITY_LEVELS = {
    ACTIVITY_INFO: logging.INFO,
    ACTIVITY_SUCCESS: logging.INFO,
    ACTIVITY_ERROR: logging.WARNING,
}


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    LEVEL_COLORS = {
        logging.DEBUG: COLORS["DEBUG"],
        logging.INFO: COLORS["RESET"],
        logging.WARNING: COLORS["WARN"],
        logging.ERROR: COLORS["ERROR"],
        logging.CRITICAL: COLORS["ERROR"] + COLORS["BOLD"],
    }

    def format(self, record: logging.LogRecord) -> str:
        # Apply level-based color
        color = self.LEVEL_COLORS.get(record.levelno, COLORS["RESET"])

        # Format: timestamp [LEVEL] message (no module name for compactness)
        timestamp = self.formatTime(record, "%H:%M:%S")
        level = record.levelname[:4]

        formatted = (
            f"{COLORS['DIM']}{timestamp}{COLORS['RESET']} "
            f"[{color}{level}{COLORS['RESET']}] "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(level: int = logging.INFO) -> None:
    """Configure colored logging for the application."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())

    # Configure root logger
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# =============================================================================
# COLORED LOG HELPER FUNCTIONS
# =============================================================================


def log_message_in(logger: logging.Logger, message: str, **context) -> None:
    """Log incoming user message.

    Args:
        logger: Logger instance
        message: User message text
        **context: Additional context (chat_id, status, etc.)
    """
    preview = message[:80] + "..." if len(message) > 80 else message
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    logger.info(f"{COLORS['MSG_IN']}>>> MESSAGE{COLORS['RESET']} {preview} [{ctx}]")


def log_reply(
    logger: logging.Logger,
    source: str,
    words: int = 0,
    typing_ms: int = 0,
) -> None:
    """Log an agent reply about to be shown.

    Args:
        logger: Logger instance
        source: 'remote' or 'fallback:<category>'
        words: Word count of the reply
        typing_ms: Typing indicator duration before the reply appears
    """
    logger.info(
        f"{COLORS['MSG_OUT']}<<< REPLY{COLORS['RESET']} "
        f"source={source} words={words} typing={typing_ms}ms"
    )


def log_timer(
    logger: logging.Logger,
    kind: str,
    state: str,
    **context,
) -> None:
    """Log timer scheduling, firing, or cancellation at debug level.

    Args:
        logger: Logger instance
        kind: Timer kind (assign, typing, followUp, endChat, status)
        state: 'scheduled', 'fired', 'cancelled' or 'stale'
        **context: Additional context (delay_ms, generation, etc.)
    """
    ctx = " ".join(f"{k}={v}" for k, v in context.items()) if context else ""
    logger.debug(f"{COLORS['TIMER']}~~~ TIMER{COLORS['RESET']} {kind} {state} {ctx}".rstrip())


def log_transition(
    logger: logging.Logger,
    old: str,
    new: str,
    chat_id: str = "",
) -> None:
    """Log a session status transition.

    Args:
        logger: Logger instance
        old: Previous status
        new: New status
        chat_id: Chat the transition belongs to
    """
    logger.info(f"{COLORS['STATE']}=== SESSION{COLORS['RESET']} {old} -> {new} {chat_id}".rstrip())


def log_activity(logger: logging.Logger, kind: str, message: str) -> None:
    """Log an event that belongs in the admin activity log.

    Records are tagged with an ``activity`` attribute so the activity
    log handler can pick them out of the regular log stream.

    Args:
        logger: Logger instance
        kind: 'info', 'success' or 'error'
        message: Human-readable event description
    """
    level = _ACTIVITY_LEVELS.get(kind, logging.INFO)
    extra = {"activity": kind}
    if logger.isEnabledFor(level):
        logger.log(level, message, extra=extra)
        return

    # Below LOG_LEVEL: keep it off the console, still show it to the admin
    from services.activity_log import capture_activity

    capture_activity(logger.makeRecord(logger.name, level, "(activity)", 0, message, None, None, extra=extra))
