"""
Session Controller - drives one support chat from first message to archive.

    idle ──submit──> queued ──assign timer──> connected ──endChat timer──> ended
                       │                          │
                       └──────── close / reset ───┴──> idle

Everything time-based goes through the TimerOrchestrator; the only
coroutine is the resolver call, spawned as a task. Every user message
sent while connected is answered: questions wait in a FIFO and reply
turns run one at a time, oldest first. Each turn carries a turn number
and each timer carries the orchestrator generation, so a result that
arrives after close or reset is dropped instead of mutating the new state.

Usage:
    controller = SessionController(settings, resolver, archiver, scheduler)
    controller.submit("hi")       # queued, assignment scheduled
    ...                           # timers fire: connected, greeting, reply
    controller.close()            # archived as closed_by_user
"""

import asyncio
import logging
import random
import re
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from logging_config import log_message_in, log_reply, log_transition
from services.settings_store import SettingsStore
from .agents import AgentPool
from .archive import SessionArchiver
from .messages import MessageStore
from .models import (
    ArchiveStatus,
    ArchivedSession,
    ChatEvent,
    ChatSession,
    Message,
    MessageKind,
    SessionStatus,
    TimerKind,
    utc_now_iso,
)
from .resolver import ResolvedReply, ResponseResolver, typing_duration_ms
from .scheduler import AsyncioScheduler, Scheduler
from .state_machine import SessionEvent, next_status
from .timers import TimerOrchestrator

logger = logging.getLogger(__name__)

QUEUED_MESSAGE = "You have been added to the queue. Please wait..."
CONNECTED_MESSAGE = "Connected with {name}"
GREETING_MESSAGE = "Hi! I'm {name} from Magnetic Clouds support. How can I help you today?"
FOLLOW_UP_MESSAGE = "Is there anything else I can help you with?"
CLOSING_MESSAGE = "Thank you for contacting Magnetic Clouds support. Have a great day!"
CHAT_ENDED_MESSAGE = "Chat ended"

GREETING_DELAY_MS = 1000
GREETING_TYPING_MS = 2000
FOLLOW_UP_TYPING_MS = 3000

_NAME_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"my name is (\w+)",
        r"i'm (\w+)",
        r"i am (\w+)",
        r"call me (\w+)",
        r"this is (\w+)",
    )
)

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def extract_name(message: str) -> Optional[str]:
    """Name the user introduced themselves with, if any."""
    for pattern in _NAME_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


def generate_chat_id(rng: Optional[random.Random] = None, now_ms: Optional[int] = None) -> str:
    """MC-<epoch ms>-<6 uppercase base36 chars>"""
    rng = rng or random
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(rng.choice(_BASE36) for _ in range(6))
    return f"MC-{stamp}-{suffix}"


class SessionController:
    """
    One widget's chat session.

    Args:
        settings: Timing and credentials (read when each timer is scheduled)
        resolver: Produces agent replies
        archiver: Receives finished sessions
        scheduler: Timer backend (defaults to the running asyncio loop)
        agents: Roster to assign from
        rng: Random source for agent choice and chat ids
        listener: Called with every ChatEvent
        language: Reply language passed to the completion service
        label: Identifies this session in logs (the widget id)
    """

    def __init__(
        self,
        settings: SettingsStore,
        resolver: ResponseResolver,
        archiver: SessionArchiver,
        scheduler: Optional[Scheduler] = None,
        agents: Optional[AgentPool] = None,
        rng: Optional[random.Random] = None,
        listener: Optional[Callable[[ChatEvent], None]] = None,
        language: str = "en",
        label: str = "",
    ):
        self.settings = settings
        self.resolver = resolver
        self.archiver = archiver
        self.scheduler = scheduler or AsyncioScheduler()
        self.agents = agents or AgentPool()
        self.rng = rng or random.Random()
        self.listener = listener
        self.language = language
        self.label = label

        self.timers = TimerOrchestrator(self.scheduler, label=label)
        self.messages = MessageStore(on_status=self._on_message_status)
        self.session = ChatSession(messages=self.messages.items)
        self.typing = False
        self.last_user_message_ms: Optional[int] = None

        self._turn = 0
        self._reply_task: Optional[asyncio.Task] = None
        self._greeting_pending = False
        self._answering = False
        self._questions: Deque[Message] = deque()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def reply_in_flight(self) -> bool:
        return self._reply_task is not None and not self._reply_task.done()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def submit(self, text: str, language: Optional[str] = None) -> Optional[Message]:
        """
        Handle a user message.

        Returns the appended Message, or None when the message was ignored
        (blank, or the chat already ended).
        """
        text = (text or "").strip()
        if not text or self.status is SessionStatus.ENDED:
            return None
        if language:
            self.language = language

        previous = self.status
        new_status = next_status(previous, SessionEvent.SUBMIT)

        name = extract_name(text)
        if name:
            self.session.user_name = name

        message = self._append(MessageKind.USER, text)
        self.messages.schedule_delivery(message, self.timers)
        self.last_user_message_ms = self.scheduler.now_ms()
        log_message_in(logger, text, status=previous.value, widget=self.label)

        if previous is SessionStatus.IDLE:
            self.session.chat_id = generate_chat_id(self.rng)
            self.session.started_at = message.timestamp
            self._set_status(new_status)
            self._append(MessageKind.SYSTEM, QUEUED_MESSAGE)
            self._questions.append(message)
            self.timers.schedule(TimerKind.ASSIGN, self.settings.settings.queue_assign_time, self._on_assign)
        elif previous is SessionStatus.CONNECTED:
            self._enqueue_question(message)
        # queued: joins the transcript; the first message is answered after assignment
        return message

    def close(self) -> Optional[ArchivedSession]:
        """Archive a live conversation (closed_by_user) and return to idle."""
        record = None
        if self.status is SessionStatus.CONNECTED and len(self.messages) > 0:
            self.session.ended_at = utc_now_iso()
            record = self._archive(ArchiveStatus.CLOSED_BY_USER)
        self._clear()
        return record

    def reset(self) -> None:
        """Discard the conversation without archiving. Safe to repeat."""
        self._clear()

    def snapshot(self) -> Dict[str, Any]:
        """Everything the widget renders."""
        return {
            **self.session.to_dict(),
            "typing": self.typing,
            "pendingTimers": self.timers.pending(),
        }

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def _on_assign(self) -> None:
        agent = self.agents.pick_random(self.rng)
        self.session.agent = agent
        self._set_status(next_status(self.status, SessionEvent.ASSIGN))
        self._append(MessageKind.SYSTEM, CONNECTED_MESSAGE.format(name=agent.name))
        self._greeting_pending = True
        self.timers.schedule(TimerKind.TYPING, GREETING_DELAY_MS, self._on_greeting_typing)

    def _on_greeting_typing(self) -> None:
        self._set_typing(True)
        self.timers.schedule(TimerKind.TYPING, GREETING_TYPING_MS, self._on_greeting)

    def _on_greeting(self) -> None:
        self._set_typing(False)
        self._append_prompt(GREETING_MESSAGE.format(name=self.session.agent.name))
        self._greeting_pending = False
        self._next_question()

    def _on_follow_up(self) -> None:
        if self.status is not SessionStatus.CONNECTED:
            return
        self._set_typing(True)
        # Same kind, so a user message cancels the prompt while it is being typed
        self.timers.schedule(TimerKind.FOLLOW_UP, FOLLOW_UP_TYPING_MS, self._on_follow_up_prompt)

    def _on_follow_up_prompt(self) -> None:
        self._set_typing(False)
        self._append_prompt(FOLLOW_UP_MESSAGE)
        self.timers.schedule(TimerKind.END_CHAT, self.settings.settings.end_chat_timeout, self._on_end_chat)

    def _on_end_chat(self) -> None:
        if self.status is not SessionStatus.CONNECTED:
            return
        self._append_prompt(CLOSING_MESSAGE)
        self._append(MessageKind.SYSTEM, CHAT_ENDED_MESSAGE)
        self._set_status(next_status(self.status, SessionEvent.END))
        self.session.ended_at = utc_now_iso()
        self.timers.cancel_all()
        self._archive(ArchiveStatus.COMPLETED)

    # ------------------------------------------------------------------
    # Reply turns
    # ------------------------------------------------------------------

    def _enqueue_question(self, question: Message) -> None:
        """Queue a connected-state message; it is answered after the ones before it."""
        self.timers.cancel(TimerKind.FOLLOW_UP)
        self.timers.cancel(TimerKind.END_CHAT)
        self._questions.append(question)
        if self._greeting_pending or self._answering:
            return
        # Only the follow-up prompt can be typing here
        self._set_typing(False)
        self._next_question()

    def _next_question(self) -> None:
        """Start the next reply turn, or the follow-up clock once nothing is left."""
        if not self._questions:
            self._answering = False
            self.timers.schedule(TimerKind.FOLLOW_UP, self.settings.settings.follow_up_timeout, self._on_follow_up)
            return

        question = self._questions.popleft()
        self._answering = True
        self._turn += 1
        turn = self._turn
        self.timers.schedule(
            TimerKind.TYPING,
            self.settings.settings.typing_start_delay,
            lambda: self._begin_resolve(turn, question),
        )

    def _begin_resolve(self, turn: int, question: Message) -> None:
        if turn != self._turn:
            return
        self._set_typing(True)
        history = [m for m in self.messages.items if m.id != question.id]
        self._reply_task = self.scheduler.spawn(
            self._resolve_and_reply(turn, self.timers.generation, history, question.content)
        )

    async def _resolve_and_reply(self, turn: int, generation: int, history, text: str) -> None:
        reply = await self.resolver.resolve_reply(history, text, self.session.agent, self.language)
        if turn != self._turn or generation != self.timers.generation:
            logger.debug(f"Dropping stale reply for turn {turn} ({self.label})")
            return
        self._reply_task = None
        duration = typing_duration_ms(reply.text, self.settings.settings.reply_time_per_word)
        log_reply(logger, reply.label, words=len(reply.text.split()), typing_ms=duration)
        self.timers.schedule(TimerKind.TYPING, duration, lambda: self._deliver_reply(turn, reply))

    def _deliver_reply(self, turn: int, reply: ResolvedReply) -> None:
        if turn != self._turn:
            return
        self._set_typing(False)
        message = self._append(MessageKind.AGENT, reply.text)
        self.messages.schedule_delivery(message, self.timers)
        self._next_question()

    def _cancel_reply_task(self) -> None:
        task, self._reply_task = self._reply_task, None
        if task is not None and not task.done():
            task.cancel()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _emit(self, event_type: str, **data: Any) -> None:
        if self.listener is not None:
            self.listener(ChatEvent(event_type, data))

    def _append(self, kind: MessageKind, content: str) -> Message:
        message = self.messages.append(kind, content)
        self._emit("message", message=message.to_dict())
        return message

    def _append_prompt(self, content: str) -> Message:
        """Scripted agent line: shown already read."""
        message = self._append(MessageKind.AGENT, content)
        self.messages.settle(message.id)
        return self.messages.get(message.id)

    def _on_message_status(self, message: Message) -> None:
        self._emit("message_status", id=message.id, status=message.status.value)

    def _set_status(self, status: SessionStatus) -> None:
        old = self.session.status
        if old is status:
            return
        self.session.status = status
        log_transition(logger, old.value, status.value, chat_id=self.session.chat_id or "")
        self._emit("status", status=status.value, previous=old.value)

    def _set_typing(self, typing: bool) -> None:
        if self.typing == typing:
            return
        self.typing = typing
        self._emit("typing", typing=typing)

    def _archive(self, status: ArchiveStatus) -> ArchivedSession:
        record = self.archiver.archive(self.session, status)
        self._emit("archived", chatId=record.chat_id, status=status.value)
        return record

    def _clear(self) -> None:
        self.timers.cancel_all()
        self._cancel_reply_task()
        self._turn += 1
        self._greeting_pending = False
        self._answering = False
        self._questions.clear()
        self.last_user_message_ms = None
        self._set_typing(False)

        old = self.session.status
        self.messages.clear()
        self.session = ChatSession(status=next_status(old, SessionEvent.RESET), messages=self.messages.items)
        if old is not SessionStatus.IDLE:
            log_transition(logger, old.value, SessionStatus.IDLE.value)
            self._emit("status", status=SessionStatus.IDLE.value, previous=old.value)
