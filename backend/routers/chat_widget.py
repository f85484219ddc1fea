"""
Support Desk Chat Widget Router

Each browser widget has a widget_id and exactly one SessionController.
The widget posts messages and polls the session snapshot; all timing
(queue, typing, follow-up, end of chat) runs server-side on the event
loop.

Endpoints:
- POST /api/chat/{widget_id}/messages  {message, language?}
- POST /api/chat/{widget_id}/close
- POST /api/chat/{widget_id}/reset
- GET  /api/chat/{widget_id}
"""

import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from chat_engine import (
    AgentPool,
    AsyncioScheduler,
    ResponseResolver,
    SessionArchiver,
    SessionController,
    SessionStatus,
)
from chat_engine.scheduler import Scheduler
from config import runtime_config
from errors import ChatDisabledError, ErrorCode, NotFoundError, ValidationError, success_response
from services.settings_store import SettingsStore, get_settings_store
from services.state_store import get_state_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

# Widget ID validation pattern: alphanumeric, hyphens, underscores, max 64 chars
_WIDGET_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")

# Idle controllers are evicted once this many widgets are tracked
MAX_WIDGET_SESSIONS = 1000

# Idle or ended widgets untouched this long are dropped (seconds)
WIDGET_IDLE_TTL_S = 30 * 60

_EVICTABLE = (SessionStatus.IDLE, SessionStatus.ENDED)


class SubmitRequest(BaseModel):
    message: str
    language: Optional[str] = None


class WidgetHub:
    """
    Registry of live widget sessions sharing one settings store,
    resolver and archive.

    Closed widgets are released right away. Idle or ended sessions that
    nobody has touched for WIDGET_IDLE_TTL_S are dropped whenever a new
    widget arrives.
    """

    def __init__(
        self,
        settings: SettingsStore,
        archiver: SessionArchiver,
        resolver: ResponseResolver,
        scheduler_factory: Callable[[], Scheduler] = AsyncioScheduler,
        agents: Optional[AgentPool] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.archiver = archiver
        self.resolver = resolver
        self.agents = agents or AgentPool()
        self._scheduler_factory = scheduler_factory
        self._clock = clock
        self._controllers: Dict[str, SessionController] = {}
        self._last_seen: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._controllers)

    def active_count(self) -> int:
        return sum(1 for c in self._controllers.values() if c.status is not SessionStatus.IDLE)

    def find(self, widget_id: str) -> Optional[SessionController]:
        controller = self._controllers.get(widget_id)
        if controller is not None:
            self._last_seen[widget_id] = self._clock()
        return controller

    def get_or_create(self, widget_id: str) -> SessionController:
        controller = self.find(widget_id)
        if controller is None:
            self._evict_stale()
            if len(self._controllers) >= MAX_WIDGET_SESSIONS:
                self._evict_idle()
            controller = SessionController(
                self.settings,
                self.resolver,
                self.archiver,
                scheduler=self._scheduler_factory(),
                agents=self.agents,
                language=runtime_config.default_language,
                label=widget_id,
            )
            self._controllers[widget_id] = controller
            self._last_seen[widget_id] = self._clock()
        return controller

    def release(self, widget_id: str) -> Optional[SessionController]:
        """Forget a widget, cancelling anything it still has scheduled."""
        self._last_seen.pop(widget_id, None)
        controller = self._controllers.pop(widget_id, None)
        if controller is not None:
            controller.reset()
        return controller

    def _evict(self, widget_ids: List[str], reason: str) -> None:
        for wid in widget_ids:
            self.release(wid)
        if widget_ids:
            logger.info(f"Evicted {len(widget_ids)} {reason} widget session(s)")

    def _evict_stale(self) -> None:
        cutoff = self._clock() - WIDGET_IDLE_TTL_S
        self._evict(
            [
                wid for wid, c in self._controllers.items()
                if c.status in _EVICTABLE and self._last_seen.get(wid, 0.0) < cutoff
            ],
            "stale",
        )

    def _evict_idle(self) -> None:
        self._evict([wid for wid, c in self._controllers.items() if c.status in _EVICTABLE], "idle")

    def shutdown(self) -> None:
        """Cancel every timer and pending reply (app shutdown)."""
        for controller in self._controllers.values():
            controller.reset()
        self._controllers.clear()
        self._last_seen.clear()


# Singleton instance
_hub: Optional[WidgetHub] = None


def get_widget_hub() -> WidgetHub:
    global _hub
    if _hub is None:
        settings = get_settings_store()
        _hub = WidgetHub(
            settings=settings,
            archiver=SessionArchiver(get_state_store()),
            resolver=ResponseResolver(settings),
        )
    return _hub


def set_widget_hub(hub: Optional[WidgetHub]) -> None:
    """Replace the singleton (tests)."""
    global _hub
    if _hub is not None and _hub is not hub:
        _hub.shutdown()
    _hub = hub


def _check_widget_id(widget_id: str) -> None:
    if not _WIDGET_ID_PATTERN.match(widget_id):
        raise ValidationError(
            "Invalid widget id",
            parameter="widget_id",
            expected="1-64 characters of a-z, A-Z, 0-9, _ or -",
            received=widget_id[:80],
            code=ErrorCode.VALIDATION_INVALID_FORMAT,
        )


@router.post("/{widget_id}/messages")
async def submit_message(widget_id: str, request: SubmitRequest) -> Dict[str, Any]:
    """Send a user message into the widget's chat."""
    _check_widget_id(widget_id)
    hub = get_widget_hub()
    if not hub.settings.enabled:
        raise ChatDisabledError("Live chat is currently unavailable")

    text = request.message.strip()
    if not text:
        raise ValidationError(
            "Message is empty",
            parameter="message",
            code=ErrorCode.VALIDATION_EMPTY_MESSAGE,
        )
    if len(text) > runtime_config.max_message_length:
        raise ValidationError(
            "Message too long",
            details=f"Limit is {runtime_config.max_message_length} characters",
            parameter="message",
            received=str(len(text)),
            code=ErrorCode.VALIDATION_OUT_OF_RANGE,
        )

    controller = hub.get_or_create(widget_id)
    message = controller.submit(text, language=request.language)
    return success_response(
        accepted=message is not None,
        message=message.to_dict() if message else None,
        chat=controller.snapshot(),
    )


@router.post("/{widget_id}/close")
async def close_chat(widget_id: str) -> Dict[str, Any]:
    """Close the widget; a live conversation is archived as closed_by_user.

    The session is released, so the next message starts a fresh one.
    """
    _check_widget_id(widget_id)
    hub = get_widget_hub()
    controller = hub.find(widget_id)
    record = controller.close() if controller else None
    hub.release(widget_id)
    return success_response(archived=record.to_dict() if record else None)


@router.post("/{widget_id}/reset")
async def reset_chat(widget_id: str) -> Dict[str, Any]:
    """Start over without archiving."""
    _check_widget_id(widget_id)
    controller = get_widget_hub().find(widget_id)
    if controller:
        controller.reset()
    return success_response()


@router.get("/{widget_id}")
async def get_chat(widget_id: str) -> Dict[str, Any]:
    """Current snapshot: status, agent, transcript, typing indicator."""
    _check_widget_id(widget_id)
    controller = get_widget_hub().find(widget_id)
    if controller is None:
        raise NotFoundError("No chat for this widget", resource_type="widget", resource_id=widget_id)
    return success_response(chat=controller.snapshot())
