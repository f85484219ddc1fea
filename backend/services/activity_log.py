"""
Activity log for the AI agent admin page.

A buffered log handler keeps the most recent agent events (key
validation, chat errors, saved/deleted chats, settings changes) in an
in-memory ring buffer with credential scrubbing. Only records tagged
through logging_config.log_activity() are captured, so regular debug
and request logging never crowd out the admin view.
"""

import logging
import re as _re
from collections import deque
from datetime import datetime
from itertools import count
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Most recent entries kept for the admin UI
ACTIVITY_BUFFER_SIZE = 50
_activity_buffer: deque = deque(maxlen=ACTIVITY_BUFFER_SIZE)
_entry_ids = count(1)
_handler: Optional["ActivityLogHandler"] = None

# Patterns to scrub from log messages before exposing via admin API
_SCRUB_PATTERNS = _re.compile(
    r'(?i)'
    r'(password|passwd|secret|token|api_key|apikey|api key|key|authorization|credential)'
    r'[\s]*[=:]\s*'
    r'["\']?([^\s"\',;}{]{3,})["\']?'
)


def _scrub_log_message(message: str) -> str:
    """Redact passwords, keys, and tokens from log messages."""
    return _SCRUB_PATTERNS.sub(lambda m: f"{m.group(1)}=***REDACTED***", message)


class ActivityLogHandler(logging.Handler):
    """Captures activity-tagged records into the ring buffer."""

    def emit(self, record):
        kind = getattr(record, "activity", None)
        if not kind:
            return
        try:
            entry = {
                "id": next(_entry_ids),
                "type": kind,
                "message": _scrub_log_message(record.getMessage()),
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "module": record.name.rsplit(".", 1)[-1],
            }
            _activity_buffer.append(entry)
        except Exception:
            self.handleError(record)


def setup_activity_log() -> ActivityLogHandler:
    """Attach the activity handler to the root logger (once).

    The root level is left alone; activity records below it are handed
    to the handler directly by capture_activity().
    """
    global _handler
    root = logging.getLogger()
    for handler in root.handlers:
        if isinstance(handler, ActivityLogHandler):
            _handler = handler
            return handler
    handler = ActivityLogHandler()
    handler.setLevel(logging.INFO)
    root.addHandler(handler)
    _handler = handler
    logger.debug("Activity log capture initialized")
    return handler


def capture_activity(record: logging.LogRecord) -> None:
    """Record an activity entry that the logger's level filtered out."""
    if _handler is not None:
        _handler.handle(record)


def get_activity_entries(limit: int = ACTIVITY_BUFFER_SIZE, kind: Optional[str] = None) -> List[Dict[str, Any]]:
    """Most recent entries first, optionally filtered by type."""
    entries = list(_activity_buffer)
    if kind:
        entries = [e for e in entries if e["type"] == kind]
    return entries[::-1][:limit]


def clear_activity() -> int:
    """Drop all buffered entries, returning how many were removed."""
    removed = len(_activity_buffer)
    _activity_buffer.clear()
    return removed
