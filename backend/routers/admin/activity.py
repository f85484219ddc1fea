"""
Activity log endpoints.
"""

from typing import Any, Dict, Optional

from fastapi import Depends

from . import router
from services.activity_log import ACTIVITY_BUFFER_SIZE, clear_activity, get_activity_entries
from services.admin_auth import verify_admin


@router.get("/ai-agent/logs")
async def get_logs(
    limit: int = ACTIVITY_BUFFER_SIZE,
    type: Optional[str] = None,
    _: bool = Depends(verify_admin),
) -> Dict[str, Any]:
    """
    Recent agent activity, newest first.

    Args:
        limit: Max entries to return
        type: Filter by entry type (info, success, error)
    """
    logs = get_activity_entries(limit=max(limit, 0), kind=type)
    return {
        "count": len(logs),
        "logs": logs,
    }


@router.delete("/ai-agent/logs")
async def clear_logs(_: bool = Depends(verify_admin)) -> Dict[str, Any]:
    return {"success": True, "cleared": clear_activity()}
