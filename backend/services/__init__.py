"""
Support Desk Services - Shared infrastructure services.

- state_store: keyed JSON persistence (settings, API key, archived chats)
- settings_store: admin-editable chat timing, enablement flag, API key
- completion_client: HTTP client for the remote completion service
- activity_log: bounded admin activity log
- admin_auth: bearer token guard for admin endpoints
- redis_client: Redis connection manager (rate-limit counters)
"""

from .state_store import StateStore, get_state_store

__all__ = ["StateStore", "get_state_store"]
