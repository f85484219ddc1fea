"""
Runtime Configuration for Support Desk.

Provides a singleton RuntimeConfig class holding process-level settings
(storage location, completion API endpoint, admin token, limits). All
values default from environment variables and can be adjusted at runtime
via update().

Chat timing (queue, typing, follow-up) is NOT here: it is admin-editable
and persisted, see services.settings_store.

Usage:
    from config import runtime_config
    url = runtime_config.completion_api_url
    runtime_config.update(completion_timeout_s=10.0)
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Any
from threading import Lock

logger = logging.getLogger(__name__)


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


@dataclass
class RuntimeConfig:
    """
    Singleton configuration for runtime-adjustable parameters.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method.
    """

    # Keyed JSON state (settings, API key, archived chats)
    state_path: str = field(
        default_factory=lambda: _first_env(
            "SUPPORTDESK_STATE_PATH",
            default="data/state/support_state.json",
        )
    )

    # Remote completion service (validate + chat endpoints live under this base)
    completion_api_url: str = field(
        default_factory=lambda: _first_env(
            "COMPLETION_API_URL",
            default="http://localhost:5000/api",
        ).rstrip("/")
    )
    completion_timeout_s: float = field(
        default_factory=lambda: float(os.environ.get("COMPLETION_TIMEOUT_S", "30"))
    )  # Matches the completion proxy's own request timeout

    # Chat widget
    default_language: str = field(
        default_factory=lambda: os.environ.get("CHAT_DEFAULT_LANGUAGE", "en").strip() or "en"
    )
    archive_limit: int = field(
        default_factory=lambda: int(os.environ.get("CHAT_ARCHIVE_LIMIT", "100"))
    )
    max_message_length: int = field(
        default_factory=lambda: int(os.environ.get("CHAT_MAX_MESSAGE_LENGTH", "4000"))
    )

    # Admin API bearer token (admin endpoints answer 503 while unset)
    admin_token: str = field(default_factory=lambda: os.environ.get("ADMIN_TOKEN", ""))

    # Redis holds the rate-limit counters (limits are skipped while it is unreachable)
    redis_url: str = field(default_factory=lambda: os.environ.get("REDIS_URL", "redis://localhost:6379/0"))
    redis_enabled: bool = field(
        default_factory=lambda: os.environ.get("REDIS_ENABLED", "true").lower() == "true"
    )

    # Per-IP request limits (per minute)
    rate_limit_chat_msg: int = field(
        default_factory=lambda: int(os.environ.get("RATE_LIMIT_CHAT_MSG", "30"))
    )
    rate_limit_admin_validate: int = field(
        default_factory=lambda: int(os.environ.get("RATE_LIMIT_ADMIN_VALIDATE", "10"))
    )

    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    )

    # Internal state
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)

    # Validation ranges for numeric config values
    _VALIDATION_RANGES: Dict[str, tuple] = field(default_factory=lambda: {
        "completion_timeout_s": (1.0, 120.0),
        "archive_limit": (1, 1000),
        "max_message_length": (1, 20000),
        "rate_limit_chat_msg": (1, 1000),
        "rate_limit_admin_validate": (1, 100),
    })

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Update configuration values at runtime.

        Args:
            **kwargs: Key-value pairs to update (e.g., completion_timeout_s=10.0)

        Returns:
            Dict with 'updated' (changed keys) and 'ignored' (unknown keys)
        """
        updated = []
        ignored = []

        with self._lock:
            for key, value in kwargs.items():
                if key.startswith("_"):
                    ignored.append(key)
                    continue

                if not hasattr(self, key):
                    ignored.append(key)
                    logger.warning(f"Config ignored unknown key: {key}")
                    continue

                if key == "completion_api_url" and isinstance(value, str):
                    cleaned = value.strip()
                    if not cleaned.startswith(("http://", "https://")):
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid URL: {key}={value!r}")
                        continue
                    value = cleaned.rstrip("/")

                # Validate numeric ranges
                if key in self._VALIDATION_RANGES:
                    lo, hi = self._VALIDATION_RANGES[key]
                    if not (lo <= value <= hi):
                        ignored.append(key)
                        logger.warning(f"Config rejected {key}={value} (must be {lo}-{hi})")
                        continue

                old_value = getattr(self, key)
                setattr(self, key, value)
                updated.append(key)
                if key == "admin_token":
                    logger.info("Config updated: admin_token")
                else:
                    logger.info(f"Config updated: {key} = {value} (was {old_value})")

            self._update_count += 1

        return {"updated": updated, "ignored": ignored, "update_count": self._update_count}

    def to_dict(self) -> Dict[str, Any]:
        """Export current config as dict (excludes internal fields and credentials)."""
        from dataclasses import fields as dataclass_fields

        result = {}
        for field_info in dataclass_fields(self):
            if field_info.name.startswith("_") or field_info.name in ("admin_token", "redis_url"):
                continue
            result[field_info.name] = getattr(self, field_info.name)
        result["admin_token_set"] = bool(self.admin_token)
        return result


# Singleton instance
runtime_config = RuntimeConfig()


def get_config() -> RuntimeConfig:
    """Get the singleton config instance."""
    return runtime_config
