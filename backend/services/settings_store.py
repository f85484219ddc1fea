"""
Settings Store - admin-editable chat timing, enablement flag and API key.

Settings are process-wide: loaded once at startup from the state store,
replaced wholesale by admin updates. ChatSettings is frozen; readers take
whatever instance is current when they schedule a timer, so an update
never reschedules timers that are already in flight.

Usage:
    from services.settings_store import get_settings_store

    settings = get_settings_store()
    delay_ms = settings.settings.queue_assign_time
    settings.update(followUpTimeout=90000)
"""

import logging
from dataclasses import dataclass, replace
from threading import Lock
from typing import Any, Dict, Optional

from errors import ValidationError, ErrorCode
from logging_config import log_activity, ACTIVITY_INFO, ACTIVITY_SUCCESS
from services.state_store import (
    StateStore,
    KEY_API_KEY,
    KEY_API_VALID,
    KEY_ENABLED,
    KEY_SETTINGS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatSettings:
    """Chat timing, all values in milliseconds."""

    queue_assign_time: int = 12000
    typing_start_delay: int = 8000
    reply_time_per_word: int = 2500
    follow_up_timeout: int = 60000
    end_chat_timeout: int = 30000

    def to_wire(self) -> Dict[str, int]:
        """camelCase dict, as stored and served to the widget."""
        return {WIRE_KEYS[name]: getattr(self, name) for name in WIRE_KEYS}

    @classmethod
    def from_wire(cls, data: Optional[Dict[str, Any]]) -> "ChatSettings":
        """Build from a stored dict, falling back to defaults per field."""
        if not isinstance(data, dict):
            return cls()
        values = {}
        for name, wire in WIRE_KEYS.items():
            raw = data.get(wire, data.get(name))
            if raw is None:
                continue
            try:
                value = _coerce_ms(raw)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring stored setting {wire}={raw!r}")
                continue
            lo, hi = VALIDATION_RANGES[name]
            if lo <= value <= hi:
                values[name] = value
            else:
                logger.warning(f"Ignoring stored setting {wire}={value} (must be {lo}-{hi})")
        return cls(**values)


WIRE_KEYS = {
    "queue_assign_time": "queueAssignTime",
    "typing_start_delay": "typingStartDelay",
    "reply_time_per_word": "replyTimePerWord",
    "follow_up_timeout": "followUpTimeout",
    "end_chat_timeout": "endChatTimeout",
}
_FIELD_BY_KEY = {**{k: k for k in WIRE_KEYS}, **{v: k for k, v in WIRE_KEYS.items()}}

# Accepted ranges (ms)
VALIDATION_RANGES: Dict[str, tuple] = {
    "queue_assign_time": (0, 600_000),
    "typing_start_delay": (0, 120_000),
    "reply_time_per_word": (0, 15_000),
    "follow_up_timeout": (1_000, 3_600_000),
    "end_chat_timeout": (1_000, 3_600_000),
}


def _coerce_ms(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not a duration")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("duration must be whole milliseconds")
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise TypeError(f"unsupported duration type {type(value).__name__}")


def mask_api_key(api_key: str) -> str:
    """Show only enough of a key for the admin to recognize it."""
    if not api_key:
        return ""
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}...{api_key[-4:]}"


class SettingsStore:
    """
    Process-wide chat settings backed by a StateStore.

    Attributes:
        settings: Current ChatSettings (replaced, never mutated)
        enabled: Whether the chat widget is shown
        api_key: Completion API key ("" when unset)
        api_key_valid: Result of the last validation (None = never validated)
    """

    def __init__(self, store: StateStore):
        self._store = store
        self._lock = Lock()
        self.settings = ChatSettings()
        self.enabled = False
        self.api_key = ""
        self.api_key_valid: Optional[bool] = None
        self.loaded = False

    def load(self) -> "SettingsStore":
        """Read persisted values; missing or broken values keep defaults."""
        with self._lock:
            self.settings = ChatSettings.from_wire(self._store.load(KEY_SETTINGS))
            self.enabled = bool(self._store.load(KEY_ENABLED, False))
            stored_key = self._store.load(KEY_API_KEY, "")
            self.api_key = stored_key.strip() if isinstance(stored_key, str) else ""
            stored_valid = self._store.load(KEY_API_VALID)
            self.api_key_valid = stored_valid if isinstance(stored_valid, bool) else None
            self.loaded = True
        logger.info(
            f"Chat settings loaded: enabled={self.enabled} api_key={'set' if self.api_key else 'unset'}"
        )
        return self

    @property
    def has_credential(self) -> bool:
        """True when a completion API key is configured."""
        return bool(self.api_key)

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Replace timing values (snake_case or camelCase keys).

        All values are validated before anything changes; one bad value
        rejects the whole update.

        Returns:
            Dict with 'updated', 'ignored', 'persisted' and the new 'settings'

        Raises:
            ValidationError: a value is not a whole number of ms or out of range
        """
        changes: Dict[str, int] = {}
        ignored = []

        for key, raw in kwargs.items():
            name = _FIELD_BY_KEY.get(key)
            if name is None:
                ignored.append(key)
                logger.warning(f"Settings ignored unknown key: {key}")
                continue
            try:
                value = _coerce_ms(raw)
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"Invalid value for {WIRE_KEYS[name]}",
                    details=str(e),
                    parameter=WIRE_KEYS[name],
                    expected="whole milliseconds",
                    received=repr(raw),
                    code=ErrorCode.VALIDATION_INVALID_TYPE,
                )
            lo, hi = VALIDATION_RANGES[name]
            if not (lo <= value <= hi):
                raise ValidationError(
                    f"{WIRE_KEYS[name]} out of range",
                    details=f"must be {lo}-{hi} ms",
                    parameter=WIRE_KEYS[name],
                    expected=f"{lo}-{hi}",
                    received=str(value),
                    code=ErrorCode.VALIDATION_OUT_OF_RANGE,
                )
            changes[name] = value

        with self._lock:
            if changes:
                self.settings = replace(self.settings, **changes)
            persisted = self._store.save(KEY_SETTINGS, self.settings.to_wire())

        if changes:
            log_activity(logger, ACTIVITY_SUCCESS, "Settings updated")
        return {
            "updated": [WIRE_KEYS[name] for name in changes],
            "ignored": ignored,
            "persisted": persisted,
            "settings": self.settings.to_wire(),
        }

    def set_api_key(self, api_key: str, valid: Optional[bool] = None) -> bool:
        """Store a key (and its validation result). Returns persistence success."""
        cleaned = (api_key or "").strip()
        with self._lock:
            self.api_key = cleaned
            self.api_key_valid = valid if cleaned else None
            ok = self._store.save(KEY_API_KEY, cleaned)
            ok = self._store.save(KEY_API_VALID, self.api_key_valid) and ok
        if cleaned:
            logger.info(f"Completion API key stored ({mask_api_key(cleaned)})")
        else:
            log_activity(logger, ACTIVITY_INFO, "API key removed")
        return ok

    def mark_api_key_valid(self, valid: bool) -> None:
        with self._lock:
            self.api_key_valid = valid
            self._store.save(KEY_API_VALID, valid)

    def set_enabled(self, enabled: bool) -> bool:
        with self._lock:
            self.enabled = bool(enabled)
            ok = self._store.save(KEY_ENABLED, self.enabled)
        log_activity(logger, ACTIVITY_INFO, f"AI Agent {'enabled' if self.enabled else 'disabled'}")
        return ok

    def public_view(self) -> Dict[str, Any]:
        """What the widget needs: enablement and timing, never the key."""
        return {
            "ai_agent_enabled": self.enabled,
            "chat": self.settings.to_wire(),
        }

    def admin_view(self) -> Dict[str, Any]:
        return {
            "ai_agent_enabled": self.enabled,
            "chat": self.settings.to_wire(),
            "api_key_set": self.has_credential,
            "api_key_preview": mask_api_key(self.api_key),
            "api_key_valid": self.api_key_valid,
        }


def default_settings() -> Dict[str, int]:
    """Factory defaults in wire format."""
    return ChatSettings().to_wire()


# Singleton instance
_settings_store: Optional[SettingsStore] = None


def get_settings_store() -> SettingsStore:
    """Get settings store singleton, loading it on first use."""
    global _settings_store
    if _settings_store is None:
        from services.state_store import get_state_store
        _settings_store = SettingsStore(get_state_store()).load()
    return _settings_store


def set_settings_store(store: Optional[SettingsStore]) -> None:
    """Replace the singleton (tests)."""
    global _settings_store
    _settings_store = store
