"""
Timer Orchestrator - named, cancellable timers for one chat session.

Timers are keyed by (kind, key). Scheduling a timer replaces the pending
one with the same key, so there is never more than one in-flight timer
per kind per session. cancel_all() bumps the generation; a callback that
was scheduled under an older generation does nothing when it fires,
even if the underlying scheduler could not cancel it in time.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from logging_config import log_timer
from .models import TimerKind
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

TimerSlot = Tuple[TimerKind, Optional[str]]


@dataclass
class PendingTimer:
    kind: TimerKind
    key: Optional[str]
    delay_ms: int
    scheduled_at_ms: int
    generation: int
    handle: Optional[TimerHandle] = field(default=None, repr=False)

    @property
    def due_ms(self) -> int:
        return self.scheduled_at_ms + self.delay_ms


class TimerOrchestrator:
    """
    Owns every timer of one session.

    Args:
        scheduler: Where timers run (AsyncioScheduler or ManualScheduler)
        label: Included in debug logs (usually the widget id)
    """

    def __init__(self, scheduler: Scheduler, label: str = ""):
        self.scheduler = scheduler
        self.label = label
        self.generation = 0
        self._pending: Dict[TimerSlot, PendingTimer] = {}

    def schedule(
        self,
        kind: TimerKind,
        delay_ms: int,
        callback: Callable[[], Any],
        key: Optional[str] = None,
    ) -> PendingTimer:
        """Schedule `callback` after `delay_ms`, replacing any pending (kind, key) timer."""
        slot = (kind, key)
        self.cancel(kind, key)

        entry = PendingTimer(
            kind=kind,
            key=key,
            delay_ms=max(int(delay_ms), 0),
            scheduled_at_ms=self.scheduler.now_ms(),
            generation=self.generation,
        )

        def fire() -> None:
            if entry.generation != self.generation or self._pending.get(slot) is not entry:
                log_timer(logger, kind.value, "stale", key=key, widget=self.label)
                return
            del self._pending[slot]
            log_timer(logger, kind.value, "fired", key=key, widget=self.label)
            callback()

        entry.handle = self.scheduler.call_later(entry.delay_ms / 1000.0, fire)
        self._pending[slot] = entry
        if kind is not TimerKind.STATUS:
            log_timer(logger, kind.value, "scheduled", delay_ms=entry.delay_ms, widget=self.label)
        return entry

    def cancel(self, kind: TimerKind, key: Optional[str] = None) -> bool:
        """Cancel the pending (kind, key) timer. Returns False if none was pending."""
        entry = self._pending.pop((kind, key), None)
        if entry is None:
            return False
        if entry.handle is not None:
            entry.handle.cancel()
        log_timer(logger, kind.value, "cancelled", key=key, widget=self.label)
        return True

    def cancel_all(self) -> int:
        """Cancel everything and invalidate callbacks already handed to the scheduler."""
        self.generation += 1
        cancelled = 0
        for entry in list(self._pending.values()):
            if entry.handle is not None:
                entry.handle.cancel()
            cancelled += 1
        self._pending.clear()
        if cancelled:
            log_timer(logger, "all", "cancelled", count=cancelled, generation=self.generation, widget=self.label)
        return cancelled

    def get(self, kind: TimerKind, key: Optional[str] = None) -> Optional[PendingTimer]:
        return self._pending.get((kind, key))

    def is_pending(self, kind: TimerKind, key: Optional[str] = None) -> bool:
        return (kind, key) in self._pending

    def pending(self) -> List[Dict[str, Any]]:
        """Pending timers, soonest first."""
        entries = sorted(self._pending.values(), key=lambda e: e.due_ms)
        return [
            {"kind": e.kind.value, "key": e.key, "due_ms": e.due_ms}
            for e in entries
        ]

    def __len__(self) -> int:
        return len(self._pending)
