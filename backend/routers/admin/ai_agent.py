"""
AI agent settings, API key validation and connection test, enable toggle.
"""

import logging
from typing import Any, Dict

from fastapi import Depends

from . import router
from .models import ApiKeyRequest, SettingsUpdate, ToggleRequest
from errors import ValidationError, handle_async_action_errors, success_response
from logging_config import log_activity, ACTIVITY_ERROR, ACTIVITY_INFO, ACTIVITY_SUCCESS
from routers.chat_widget import get_widget_hub
from services.admin_auth import verify_admin
from services.settings_store import get_settings_store

logger = logging.getLogger(__name__)


@router.get("/ai-agent/settings")
async def get_agent_settings(_: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """Enablement, timing and key status (the key itself is masked)."""
    return success_response(get_settings_store().admin_view())


@router.put("/ai-agent/settings")
async def update_agent_settings(
    request: SettingsUpdate,
    _: bool = Depends(verify_admin),
) -> Dict[str, Any]:
    """
    Update chat timing and/or store an API key.

    Timing values are range-checked; one bad value rejects the request
    (400) and nothing changes.
    """
    settings = get_settings_store()
    timing = request.model_dump(exclude_none=True, exclude={"api_key"})

    result = settings.update(**timing) if timing else {"updated": [], "ignored": [], "persisted": True}
    if request.api_key is not None:
        settings.set_api_key(request.api_key)
        result["updated"] = [*result["updated"], "api_key"]

    return success_response(
        updated=result["updated"],
        ignored=result["ignored"],
        persisted=result["persisted"],
        settings=settings.admin_view(),
    )


@router.post("/ai-agent/toggle")
async def toggle_agent(request: ToggleRequest, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    settings = get_settings_store()
    persisted = settings.set_enabled(request.enabled)
    return success_response(enabled=settings.enabled, persisted=persisted)


@handle_async_action_errors("validate_api_key", logger=logger)
async def _validate_and_store(api_key: str) -> Dict[str, Any]:
    log_activity(logger, ACTIVITY_INFO, "Validating API key...")
    result = await get_widget_hub().resolver.client.validate(api_key)
    settings = get_settings_store()

    if result["valid"]:
        settings.set_api_key(api_key, valid=True)
        log_activity(logger, ACTIVITY_SUCCESS, "API key validated successfully!")
        return success_response(valid=True, message=result["message"])

    if api_key == settings.api_key:
        settings.mark_api_key_valid(False)
    log_activity(logger, ACTIVITY_ERROR, result["message"])
    return {"success": False, "valid": False, "message": result["message"]}


@router.post("/ai-agent/validate")
async def validate_api_key(request: ApiKeyRequest, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """
    Check a key against the completion service; store it if it works.

    Service failures come back as a 200 with success=False and an error
    block, so the admin page can show them inline.
    """
    api_key = request.api_key.strip()
    if not api_key:
        raise ValidationError("API key is required", parameter="api_key", expected="non-empty string")

    result = await _validate_and_store(api_key)
    error = result.get("error")
    if error:
        log_activity(logger, ACTIVITY_ERROR, f"Validation failed: {error['message']}")
    return result


# Canned exchange used by the connection test
TEST_MESSAGE = "Hello! This is a connection test. Please reply with a short greeting."
TEST_AGENT_NAME = "Support Agent"


@handle_async_action_errors("test_connection", logger=logger)
async def _run_connection_test(api_key: str) -> Dict[str, Any]:
    log_activity(logger, ACTIVITY_INFO, "Testing AI agent connection...")
    reply = await get_widget_hub().resolver.client.chat(
        api_key=api_key,
        message=TEST_MESSAGE,
        agent_name=TEST_AGENT_NAME,
    )
    log_activity(logger, ACTIVITY_SUCCESS, "AI agent connection test passed")
    return success_response(response=reply)


@router.post("/ai-agent/test")
async def check_agent_connection(request: ApiKeyRequest, _: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """
    Send one canned chat message with the given key.

    Nothing is stored. Failures come back as a 200 with success=False,
    a message and the error block.
    """
    api_key = request.api_key.strip()
    if not api_key:
        raise ValidationError("API key is required", parameter="api_key", expected="non-empty string")

    result = await _run_connection_test(api_key)
    error = result.get("error")
    if error:
        log_activity(logger, ACTIVITY_ERROR, f"Connection test failed: {error['message']}")
        result["message"] = error["message"]
    return result


@router.delete("/ai-agent/api-key")
async def remove_api_key(_: bool = Depends(verify_admin)) -> Dict[str, Any]:
    """Forget the key; replies fall back to canned responses."""
    persisted = get_settings_store().set_api_key("")
    return success_response(persisted=persisted)
