"""
Support Desk Chat Engine - simulated live-support conversations

Components:
- SessionController: lifecycle state machine for one widget's chat
- TimerOrchestrator: named, cancellable timers with generation guards
- MessageStore: ordered transcript with delivery status (sent/delivered/read)
- ResponseResolver: remote completion reply, keyword fallback otherwise
- AgentPool: fixed agent roster, uniform random assignment
- SessionArchiver: bounded archive of finished chats with search/export

Timing runs on an injected scheduler. Production uses AsyncioScheduler;
tests use ManualScheduler and move a virtual clock instead of sleeping.
"""

from .models import (
    AgentProfile,
    ArchivedSession,
    ArchiveStatus,
    ChatEvent,
    ChatSession,
    Message,
    MessageKind,
    MessageStatus,
    SessionStatus,
    TimerKind,
)
from .agents import AgentPool, AGENT_PROFILES
from .scheduler import AsyncioScheduler, ManualScheduler
from .timers import TimerOrchestrator
from .messages import MessageStore
from .resolver import ResponseResolver, classify, typing_duration_ms
from .archive import SessionArchiver
from .controller import SessionController

__all__ = [
    "AgentProfile",
    "ArchivedSession",
    "ArchiveStatus",
    "ChatEvent",
    "ChatSession",
    "Message",
    "MessageKind",
    "MessageStatus",
    "SessionStatus",
    "TimerKind",
    "AgentPool",
    "AGENT_PROFILES",
    "AsyncioScheduler",
    "ManualScheduler",
    "TimerOrchestrator",
    "MessageStore",
    "ResponseResolver",
    "classify",
    "typing_duration_ms",
    "SessionArchiver",
    "SessionController",
]
