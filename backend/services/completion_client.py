"""
Completion Client - HTTP client for the remote chat completion service.

The completion service owns the language model and the knowledge base;
this side only forwards the conversation:

    POST {base}/ai-agent/validate  {apiKey}                      -> {valid, message}
    POST {base}/ai-agent/chat      {apiKey, message, agentName,
                                    agentNameLocal, language,
                                    chatHistory[<=10]}           -> {response}

Every failure is raised as a SupportDeskError (ExternalServiceError for
transport/HTTP problems, CompletionError for unusable payloads). Callers
in the chat engine catch these and fall back to canned replies.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from config import runtime_config
from errors import CompletionError, ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

# Remote context window
MAX_HISTORY_MESSAGES = 10


class CompletionClient:
    """
    Async client for the completion service.

    Args:
        base_url: Service base URL (defaults to runtime_config.completion_api_url)
        timeout_s: Request timeout (defaults to runtime_config.completion_timeout_s)
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/") if base_url else None
        self._timeout_s = timeout_s
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url or runtime_config.completion_api_url

    @property
    def timeout_s(self) -> float:
        return float(self._timeout_s or runtime_config.completion_timeout_s)

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.post(url, json=payload)
                try:
                    response.raise_for_status()
                except httpx.HTTPStatusError as exc:
                    status_code = exc.response.status_code
                    if status_code in (401, 403):
                        raise CompletionError(
                            "Completion API rejected the key",
                            details=f"HTTP {status_code}",
                            error_type="invalid_key",
                        )
                    raise ExternalServiceError(
                        "Completion service error",
                        details=f"Completion service returned status {status_code}",
                        service="completion",
                        status_code=status_code,
                    )
                try:
                    data = response.json()
                except ValueError:
                    raise CompletionError(
                        "Completion service returned malformed JSON",
                        details=response.text[:200],
                        error_type="invalid",
                    )
        except httpx.TimeoutException:
            raise ExternalServiceError(
                "Completion service timed out",
                details=f"No answer within {self.timeout_s:g}s",
                service="completion",
            )
        except httpx.RequestError as exc:
            raise ExternalServiceError(
                "Completion service unavailable",
                details=f"Could not connect to the completion service ({type(exc).__name__})",
                service="completion",
            )

        if not isinstance(data, dict):
            raise CompletionError(
                "Completion service returned an unexpected payload",
                details=f"expected object, got {type(data).__name__}",
                error_type="invalid",
            )
        return data

    async def validate(self, api_key: str) -> Dict[str, Any]:
        """
        Ask the completion service whether an API key works.

        Returns:
            {"valid": bool, "message": str}

        Raises:
            ValidationError: blank key
            ExternalServiceError / CompletionError: service unreachable or answered garbage
        """
        api_key = (api_key or "").strip()
        if not api_key:
            raise ValidationError("API key is required", parameter="api_key", expected="non-empty string")

        data = await self._post("/ai-agent/validate", {"apiKey": api_key})
        if "valid" not in data:
            raise CompletionError(
                "Validation answer is missing 'valid'",
                details=str(data)[:200],
                error_type="invalid",
            )
        valid = bool(data.get("valid"))
        message = data.get("message") or ("API key is valid" if valid else "Invalid API key")
        return {"valid": valid, "message": str(message)}

    async def chat(
        self,
        api_key: str,
        message: str,
        agent_name: str,
        agent_name_local: str = "",
        language: str = "en",
        chat_history: Optional[List[Dict[str, Any]]] = None,
    ) -> str:
        """
        Get a reply for `message` in the voice of `agent_name`.

        chat_history is trimmed to the last MAX_HISTORY_MESSAGES entries.

        Raises:
            ExternalServiceError / CompletionError on any failure, including an empty reply
        """
        history = list(chat_history or [])[-MAX_HISTORY_MESSAGES:]
        data = await self._post(
            "/ai-agent/chat",
            {
                "apiKey": api_key,
                "message": message,
                "agentName": agent_name,
                "agentNameLocal": agent_name_local,
                "language": language,
                "chatHistory": history,
            },
        )
        reply = data.get("response")
        if not isinstance(reply, str) or not reply.strip():
            raise CompletionError(
                "Completion service returned no reply",
                details=str(data.get("error") or "missing 'response'")[:200],
                error_type="invalid",
            )
        return reply.strip()
