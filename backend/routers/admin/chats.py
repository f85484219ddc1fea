"""
Archived chat review: list/search, delete, export.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Response

from . import router
from chat_engine import ArchiveStatus
from errors import ErrorCode, NotFoundError, ValidationError, success_response
from routers.chat_widget import get_widget_hub
from services.admin_auth import verify_admin

logger = logging.getLogger(__name__)


def _parse_status(status: Optional[str]) -> Optional[ArchiveStatus]:
    if not status or status == "all":
        return None
    try:
        return ArchiveStatus(status)
    except ValueError:
        raise ValidationError(
            "Unknown chat status",
            parameter="status",
            expected="all, completed or closed_by_user",
            received=status,
            code=ErrorCode.VALIDATION_INVALID_FORMAT,
        )


@router.get("/ai-agent/chats")
async def list_chats(
    q: str = "",
    status: Optional[str] = None,
    _: bool = Depends(verify_admin),
) -> Dict[str, Any]:
    """
    Archived chats, newest first.

    Args:
        q: Case-insensitive match on chat id, agent name or message text
        status: all, completed or closed_by_user
    """
    archiver = get_widget_hub().archiver
    records = archiver.search(q, _parse_status(status))
    return success_response(
        count=len(records),
        total=len(archiver),
        chats=[r.to_dict() for r in records],
    )


@router.get("/ai-agent/chats/export")
async def export_chats(_: bool = Depends(verify_admin)) -> Response:
    """Download the whole archive as chat-history-<date>.json."""
    filename, payload = get_widget_hub().archiver.export()
    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/ai-agent/chats/{chat_id}")
async def get_chat(chat_id: str, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    record = get_widget_hub().archiver.get(chat_id)
    if record is None:
        raise NotFoundError("Chat not found", resource_type="chat", resource_id=chat_id)
    return success_response(chat=record.to_dict())


@router.delete("/ai-agent/chats/{chat_id}")
async def delete_chat(chat_id: str, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    if not get_widget_hub().archiver.delete(chat_id):
        raise NotFoundError("Chat not found", resource_type="chat", resource_id=chat_id)
    return success_response(deleted=chat_id)


@router.delete("/ai-agent/chats")
async def delete_all_chats(_: bool = Depends(verify_admin)) -> Dict[str, Any]:
    removed = get_widget_hub().archiver.delete_all()
    return success_response(deleted=removed)
