"""
Status and runtime config endpoints.
"""

import logging
import time
from typing import Any, Dict

from fastapi import Depends

from . import router
from .models import ConfigUpdate
from config import runtime_config
from errors import success_response
from routers.chat_widget import get_widget_hub
from services.admin_auth import verify_admin
from services.redis_client import get_redis

logger = logging.getLogger(__name__)

_started_at = time.time()


@router.get("/status")
async def get_system_status(_: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """
    Get support desk status.

    Returns:
        - AI agent enablement and key status
        - Live widget sessions (tracked / mid-conversation)
        - Archive size
        - Redis (rate-limit counters) health
        - Uptime
    """
    hub = get_widget_hub()
    settings = hub.settings
    redis = await get_redis()
    return success_response(
        ai_agent={
            "enabled": settings.enabled,
            "api_key_set": bool(settings.api_key),
            "api_key_valid": settings.api_key_valid,
        },
        widgets={
            "tracked": len(hub),
            "active": hub.active_count(),
        },
        archive={
            "count": len(hub.archiver),
            "limit": hub.archiver.limit,
        },
        redis=await redis.health_check(),
        uptime_s=round(time.time() - _started_at, 1),
    )


@router.get("/config")
async def get_config(_: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """Get current runtime configuration."""
    return success_response(config=runtime_config.to_dict())


@router.put("/config")
async def update_config(update: ConfigUpdate, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """
    Update runtime configuration.

    Changes take effect immediately without restart. Out-of-range values
    are reported under 'ignored'.
    """
    updates = {k: v for k, v in update.model_dump().items() if v is not None}
    if not updates:
        return success_response(updated=[], message="No changes")

    for k, v in updates.items():
        if isinstance(v, str):
            updates[k] = v.strip()

    result = runtime_config.update(**updates)
    return success_response(
        updated=result["updated"],
        ignored=result["ignored"],
        config=runtime_config.to_dict(),
    )
