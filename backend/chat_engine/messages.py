"""
Message Store - ordered transcript with per-message delivery status.

Insertion order is the canonical order. User and agent messages start as
"sent" and move forward one step at a time (sent -> delivered -> read);
system messages have no status. Messages are frozen, so advancing a
status swaps a new Message into the same slot.
"""

import logging
from dataclasses import replace
from itertools import count
from typing import Callable, Dict, List, Optional

from .models import (
    MESSAGE_STATUS_ORDER,
    Message,
    MessageKind,
    MessageStatus,
    TimerKind,
    utc_now_iso,
)
from .timers import TimerOrchestrator

logger = logging.getLogger(__name__)

# Delay (ms, from send time) before each forward step
STATUS_DELAYS_MS: Dict[MessageKind, tuple] = {
    MessageKind.USER: (500, 1500),
    MessageKind.AGENT: (1000, 2500),
}


class MessageStore:
    """
    Append-only transcript for one session.

    Args:
        items: Backing list (shared with ChatSession.messages)
        on_status: Called with the updated Message after every status step
    """

    def __init__(
        self,
        items: Optional[List[Message]] = None,
        on_status: Optional[Callable[[Message], None]] = None,
    ):
        self.items: List[Message] = items if items is not None else []
        self._on_status = on_status
        self._ids = count(1)
        self._positions: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self.items)

    def append(self, kind: MessageKind, content: str, status: Optional[MessageStatus] = None) -> Message:
        """Add a message at the tail with the next id and the current time."""
        if kind is MessageKind.SYSTEM:
            status = None
        elif status is None:
            status = MessageStatus.SENT
        message = Message(
            id=next(self._ids),
            kind=kind,
            content=content,
            timestamp=utc_now_iso(),
            status=status,
        )
        self._positions[message.id] = len(self.items)
        self.items.append(message)
        return message

    def get(self, message_id: int) -> Optional[Message]:
        pos = self._positions.get(message_id)
        return self.items[pos] if pos is not None else None

    def advance_status(self, message_id: int) -> Optional[MessageStatus]:
        """Move one step forward. Returns the new status, or None if nothing moved."""
        pos = self._positions.get(message_id)
        if pos is None:
            return None
        message = self.items[pos]
        if message.status is None:
            return None
        step = MESSAGE_STATUS_ORDER.index(message.status)
        if step + 1 >= len(MESSAGE_STATUS_ORDER):
            return None
        updated = replace(message, status=MESSAGE_STATUS_ORDER[step + 1])
        self.items[pos] = updated
        if self._on_status:
            self._on_status(updated)
        return updated.status

    def schedule_delivery(self, message: Message, timers: TimerOrchestrator) -> None:
        """Schedule the delivered and read steps for a user or agent message."""
        delays = STATUS_DELAYS_MS.get(message.kind)
        if not delays:
            return
        for step, delay_ms in enumerate(delays, start=1):
            timers.schedule(
                TimerKind.STATUS,
                delay_ms,
                lambda mid=message.id: self.advance_status(mid),
                key=f"{message.id}:{MESSAGE_STATUS_ORDER[step].value}",
            )

    def settle(self, message_id: int) -> List[MessageStatus]:
        """Walk a message through every remaining step now."""
        steps = []
        while True:
            status = self.advance_status(message_id)
            if status is None:
                return steps
            steps.append(status)

    def recent(self, n: int) -> List[Message]:
        return self.items[-n:] if n > 0 else []

    def snapshot(self) -> List[dict]:
        return [m.to_dict() for m in self.items]

    def clear(self) -> None:
        """Empty the transcript in place. Ids keep counting up."""
        del self.items[:]
        self._positions.clear()
