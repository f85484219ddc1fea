"""
State Store - keyed JSON persistence for widget and admin state.

Holds the handful of values that must survive a restart: the chat
enablement flag, the completion API key, chat timing settings and the
archived chat collection. Everything lives in one JSON document keyed by
name, e.g.:

    {
        "ai_agent_enabled": true,
        "ai_agent_api_key": "...",
        "ai_agent_settings": {"queueAssignTime": 12000, ...},
        "ai_agent_chats": [...]
    }

Storage failures never propagate: save() and delete() return False and
log, load() returns the default. Chat continuity outranks durability.

Usage:
    from services.state_store import get_state_store

    store = get_state_store()
    store.save("ai_agent_enabled", True)
    enabled = store.load("ai_agent_enabled", False)
"""

import copy
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from errors import PersistenceError, log_error

logger = logging.getLogger(__name__)

# Keys
KEY_ENABLED = "ai_agent_enabled"
KEY_API_KEY = "ai_agent_api_key"
KEY_API_VALID = "ai_agent_api_valid"
KEY_SETTINGS = "ai_agent_settings"
KEY_CHATS = "ai_agent_chats"


class StateStore:
    """Repository interface for keyed state."""

    def load(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def save(self, key: str, value: Any) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def teardown(self) -> None:
        """Release resources; the store must not be used afterwards."""


class MemoryStateStore(StateStore):
    """In-process store (tests, and a stand-in when no disk is available)."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.fail_writes = False

    def load(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def save(self, key: str, value: Any) -> bool:
        if self.fail_writes:
            log_error(
                logger,
                PersistenceError("State write failed", details="store is read-only", key=key, operation="write"),
                context="state",
                include_traceback=False,
                level=logging.WARNING,
            )
            return False
        self._data[key] = copy.deepcopy(value)
        return True

    def delete(self, key: str) -> bool:
        if self.fail_writes:
            return False
        self._data.pop(key, None)
        return True

    def teardown(self) -> None:
        self._data.clear()


class JsonStateStore(StateStore):
    """
    File-backed store: one JSON document, rewritten on every save.

    The document is read once on first access and cached; writes update
    the cache first so a failing disk never loses in-memory state.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = Lock()
        self._cache: Optional[Dict[str, Any]] = None

    def _read(self) -> Dict[str, Any]:
        """Load the document from disk (cached)."""
        if self._cache is not None:
            return self._cache

        data: Dict[str, Any] = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(raw, dict):
                    data = raw
                else:
                    logger.warning(f"State file {self.path} is not a JSON object, starting empty")
            except (OSError, json.JSONDecodeError) as e:
                log_error(
                    logger,
                    PersistenceError("State read failed", details=str(e), operation="read"),
                    context="state",
                    include_traceback=False,
                    level=logging.WARNING,
                )
        self._cache = data
        return data

    def _write(self, data: Dict[str, Any], key: str) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
            tmp_path.replace(self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            log_error(
                logger,
                PersistenceError("State write failed", details=str(e), key=key, operation="write"),
                context="state",
                include_traceback=False,
                level=logging.WARNING,
            )
            return False

    def load(self, key: str, default: Any = None) -> Any:
        with self._lock:
            data = self._read()
            if key not in data:
                return default
            return copy.deepcopy(data[key])

    def save(self, key: str, value: Any) -> bool:
        with self._lock:
            data = self._read()
            data[key] = copy.deepcopy(value)
            return self._write(data, key)

    def delete(self, key: str) -> bool:
        with self._lock:
            data = self._read()
            if key not in data:
                return True
            data.pop(key)
            return self._write(data, key)

    def teardown(self) -> None:
        with self._lock:
            self._cache = None


# Singleton instance
_state_store: Optional[StateStore] = None


def get_state_store() -> StateStore:
    """Get state store singleton (file-backed at runtime_config.state_path)."""
    global _state_store
    if _state_store is None:
        from config import runtime_config
        _state_store = JsonStateStore(runtime_config.state_path)
    return _state_store


def set_state_store(store: Optional[StateStore]) -> None:
    """Replace the singleton (tests and alternate deployments)."""
    global _state_store
    if _state_store is not None and _state_store is not store:
        _state_store.teardown()
    _state_store = store
