"""
Session Archiver - bounded, persisted collection of finished chats.

Newest first. Archiving past the limit drops the oldest record. Every
operation is safe on an empty collection, and a failing state store
only costs durability: the in-memory collection stays correct.
"""

import json
import logging
from datetime import date
from threading import Lock
from typing import List, Optional, Tuple

from config import runtime_config
from logging_config import log_activity, ACTIVITY_INFO
from services.state_store import StateStore, KEY_CHATS
from .models import ArchiveStatus, ArchivedSession, ChatSession

logger = logging.getLogger(__name__)


class SessionArchiver:
    """
    Archive of finished chats, loaded from and saved to a StateStore.

    Args:
        store: Keyed state store (the collection lives under KEY_CHATS)
        limit: Maximum records kept (defaults to runtime_config.archive_limit)
    """

    def __init__(self, store: StateStore, limit: Optional[int] = None):
        self._store = store
        self._limit = limit
        self._lock = Lock()
        self._records: List[ArchivedSession] = self._load()

    @property
    def limit(self) -> int:
        return self._limit or runtime_config.archive_limit

    def _load(self) -> List[ArchivedSession]:
        raw = self._store.load(KEY_CHATS, [])
        if not isinstance(raw, list):
            logger.warning(f"Archived chats are not a list ({type(raw).__name__}), starting empty")
            return []
        records = []
        for item in raw:
            try:
                records.append(ArchivedSession.from_dict(item))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable archived chat: {e}")
        return records

    def _persist(self) -> bool:
        return self._store.save(KEY_CHATS, [r.to_dict() for r in self._records])

    def __len__(self) -> int:
        return len(self._records)

    def archive(self, session: ChatSession, status: ArchiveStatus) -> ArchivedSession:
        """Freeze `session`, add it at the front and evict beyond the limit."""
        record = ArchivedSession.from_session(session, status)
        with self._lock:
            self._records.insert(0, record)
            evicted = len(self._records) - self.limit
            if evicted > 0:
                del self._records[self.limit:]
            self._persist()
        log_activity(logger, ACTIVITY_INFO, f"Chat {record.chat_id} saved")
        if evicted > 0:
            logger.debug(f"Archive full, evicted {evicted} oldest chat(s)")
        return record

    def get(self, chat_id: str) -> Optional[ArchivedSession]:
        for record in self._records:
            if record.chat_id == chat_id:
                return record
        return None

    def delete(self, chat_id: str) -> bool:
        """Remove one chat. Returns False if it was not archived."""
        with self._lock:
            remaining = [r for r in self._records if r.chat_id != chat_id]
            if len(remaining) == len(self._records):
                return False
            self._records = remaining
            self._persist()
        log_activity(logger, ACTIVITY_INFO, f"Chat {chat_id} deleted")
        return True

    def delete_all(self) -> int:
        with self._lock:
            removed = len(self._records)
            self._records = []
            self._store.delete(KEY_CHATS)
        log_activity(logger, ACTIVITY_INFO, "All chats cleared")
        return removed

    def list(self) -> List[ArchivedSession]:
        return list(self._records)

    def search(self, query: str = "", status: Optional[ArchiveStatus] = None) -> List[ArchivedSession]:
        """
        Filter by status and by a case-insensitive substring of the chat id,
        the agent's name or any message's content.
        """
        needle = (query or "").strip().lower()
        results = []
        for record in self._records:
            if status is not None and record.status != status:
                continue
            if needle and not (
                needle in record.chat_id.lower()
                or (record.agent is not None and needle in record.agent.name.lower())
                or any(needle in m.content.lower() for m in record.messages)
            ):
                continue
            results.append(record)
        return results

    def export(self, today: Optional[date] = None) -> Tuple[str, str]:
        """(filename, JSON text) of the whole collection."""
        filename = f"chat-history-{(today or date.today()).isoformat()}.json"
        payload = json.dumps([r.to_dict() for r in self._records], indent=2, ensure_ascii=False)
        return filename, payload
