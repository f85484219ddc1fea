"""
Support Desk Chat Models - session, message and agent types

Plain dataclasses shared by the chat engine. Messages and agent profiles
are frozen; the message store swaps in a new Message when a delivery
status advances, so a snapshot taken for the archive can never change
afterwards.

Wire format (archive file, export, widget snapshot) is camelCase to stay
compatible with chats saved by the browser widget:

    {"chatId": "MC-...", "agent": {"id": 3, "name": "...", "nameLocal": "...",
     "avatar": "...", "gender": "female"},
     "messages": [{"id": 1, "type": "user", "content": "hi",
                   "status": "read", "timestamp": "..."}],
     "userName": "Guest", "status": "completed",
     "startedAt": "...", "endedAt": "..."}
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SessionStatus(str, Enum):
    IDLE = "idle"
    QUEUED = "queued"
    CONNECTED = "connected"
    ENDED = "ended"


class MessageKind(str, Enum):
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"


class MessageStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


# Forward-only delivery order
MESSAGE_STATUS_ORDER: Tuple[MessageStatus, ...] = (
    MessageStatus.SENT,
    MessageStatus.DELIVERED,
    MessageStatus.READ,
)


class ArchiveStatus(str, Enum):
    COMPLETED = "completed"
    CLOSED_BY_USER = "closed_by_user"


class TimerKind(str, Enum):
    ASSIGN = "assign"
    TYPING = "typing"
    FOLLOW_UP = "followUp"
    END_CHAT = "endChat"
    STATUS = "status"  # per-message delivery steps, keyed by message id


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AgentProfile:
    """One support agent from the fixed roster."""

    id: int
    name: str
    name_local: str
    avatar: str
    gender: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "nameLocal": self.name_local,
            "avatar": self.avatar,
            "gender": self.gender,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentProfile":
        return cls(
            id=data.get("id", 0),
            name=data.get("name", ""),
            name_local=data.get("nameLocal", data.get("name_local", "")),
            avatar=data.get("avatar", ""),
            gender=data.get("gender", ""),
        )


@dataclass(frozen=True)
class Message:
    """A single transcript entry. System messages carry no status."""

    id: int
    kind: MessageKind
    content: str
    timestamp: str
    status: Optional[MessageStatus] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.status is not None:
            data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        status = data.get("status")
        return cls(
            id=data.get("id", 0),
            kind=MessageKind(data.get("type", MessageKind.SYSTEM.value)),
            content=data.get("content", ""),
            timestamp=data.get("timestamp", ""),
            status=MessageStatus(status) if status else None,
        )


@dataclass
class ChatSession:
    """Live conversation state, owned by one SessionController.

    Attributes:
        chat_id: Assigned when the first message queues the chat
        status: Current lifecycle status
        started_at: Timestamp of the first user message
        ended_at: Set when the chat ends or is closed
        agent: Assigned agent (None until assignment fires)
        user_name: Display name, updated when the user introduces themselves
        messages: Transcript in insertion order (mirrors the MessageStore)
    """

    chat_id: Optional[str] = None
    status: SessionStatus = SessionStatus.IDLE
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    agent: Optional[AgentProfile] = None
    user_name: str = "Guest"
    messages: List[Message] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chatId": self.chat_id,
            "status": self.status.value,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
            "agent": self.agent.to_dict() if self.agent else None,
            "userName": self.user_name,
            "messages": [m.to_dict() for m in self.messages],
        }


@dataclass(frozen=True)
class ArchivedSession:
    """Immutable record of a finished chat."""

    chat_id: str
    agent: Optional[AgentProfile]
    messages: Tuple[Message, ...]
    user_name: str
    status: ArchiveStatus
    started_at: Optional[str]
    ended_at: Optional[str]

    @classmethod
    def from_session(cls, session: ChatSession, status: ArchiveStatus) -> "ArchivedSession":
        return cls(
            chat_id=session.chat_id or "",
            agent=session.agent,
            messages=tuple(session.messages),
            user_name=session.user_name,
            status=status,
            started_at=session.started_at,
            ended_at=session.ended_at or utc_now_iso(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chatId": self.chat_id,
            "agent": self.agent.to_dict() if self.agent else None,
            "messages": [m.to_dict() for m in self.messages],
            "userName": self.user_name,
            "status": self.status.value,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArchivedSession":
        agent = data.get("agent")
        return cls(
            chat_id=data.get("chatId", ""),
            agent=AgentProfile.from_dict(agent) if isinstance(agent, dict) else None,
            messages=tuple(Message.from_dict(m) for m in data.get("messages") or []),
            user_name=data.get("userName", "Guest"),
            status=ArchiveStatus(data.get("status", ArchiveStatus.COMPLETED.value)),
            started_at=data.get("startedAt"),
            ended_at=data.get("endedAt"),
        )


@dataclass
class ChatEvent:
    """Something the widget should render (message, typing, status...)."""

    type: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, **self.data}
