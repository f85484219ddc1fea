"""
Support Desk Public Settings Router

The widget reads this once on page load to decide whether to render and
which timing to show. Never exposes the API key.
"""

from typing import Any, Dict

from fastapi import APIRouter

from services.settings_store import get_settings_store

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("/public")
async def get_public_settings() -> Dict[str, Any]:
    return {"settings": get_settings_store().public_view()}
