"""
Session lifecycle as a pure transition function.

    idle --submit--> queued --assign--> connected --end--> ended
      ^                 |                   |                |
      +------reset------+-------------------+----------------+

submit is also accepted (as a self-loop) while queued or connected.
"""

from enum import Enum
from typing import Dict, Tuple

from errors import SessionStateError
from .models import SessionStatus


class SessionEvent(str, Enum):
    SUBMIT = "submit"
    ASSIGN = "assign"
    END = "end"
    RESET = "reset"


_TRANSITIONS: Dict[Tuple[SessionStatus, SessionEvent], SessionStatus] = {
    (SessionStatus.IDLE, SessionEvent.SUBMIT): SessionStatus.QUEUED,
    (SessionStatus.QUEUED, SessionEvent.SUBMIT): SessionStatus.QUEUED,
    (SessionStatus.CONNECTED, SessionEvent.SUBMIT): SessionStatus.CONNECTED,
    (SessionStatus.QUEUED, SessionEvent.ASSIGN): SessionStatus.CONNECTED,
    (SessionStatus.CONNECTED, SessionEvent.END): SessionStatus.ENDED,
}


def next_status(status: SessionStatus, event: SessionEvent) -> SessionStatus:
    """Return the status after `event`, or raise SessionStateError if illegal."""
    if event is SessionEvent.RESET:
        return SessionStatus.IDLE
    try:
        return _TRANSITIONS[(status, event)]
    except KeyError:
        raise SessionStateError(
            f"Cannot {event.value} while {status.value}",
            status=status.value,
            event=event.value,
        )


def can_transition(status: SessionStatus, event: SessionEvent) -> bool:
    return event is SessionEvent.RESET or (status, event) in _TRANSITIONS
