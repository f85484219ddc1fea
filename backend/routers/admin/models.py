"""
Pydantic models for admin API requests.
"""

from typing import Optional

from pydantic import BaseModel


class SettingsUpdate(BaseModel):
    """Chat timing (ms) and/or API key. Omitted fields stay as they are."""

    queueAssignTime: Optional[int] = None
    typingStartDelay: Optional[int] = None
    replyTimePerWord: Optional[int] = None
    followUpTimeout: Optional[int] = None
    endChatTimeout: Optional[int] = None
    # Stored without validation; use /ai-agent/validate to check it
    api_key: Optional[str] = None


class ApiKeyRequest(BaseModel):
    api_key: str = ""


class ToggleRequest(BaseModel):
    enabled: bool


class ConfigUpdate(BaseModel):
    """Runtime configuration update request."""

    completion_api_url: Optional[str] = None
    completion_timeout_s: Optional[float] = None
    default_language: Optional[str] = None
    archive_limit: Optional[int] = None
    max_message_length: Optional[int] = None
    rate_limit_chat_msg: Optional[int] = None
    rate_limit_admin_validate: Optional[int] = None
