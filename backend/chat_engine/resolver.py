"""
Response Resolver - produces the agent's reply to a user message.

With a usable API key the remote completion service answers; without one,
or when the remote call fails for any reason, a canned reply is picked
from the category the message falls into:

    pricing  > support > domains > greeting > general

resolve() never raises. Typing time for a reply is proportional to its
word count and capped so a long answer never stalls the widget.
"""

import logging
import random
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from errors import ErrorCode, SupportDeskError, format_error_for_user, log_error
from logging_config import log_activity, ACTIVITY_ERROR
from services.completion_client import CompletionClient, MAX_HISTORY_MESSAGES
from services.settings_store import SettingsStore
from .models import AgentProfile, Message

logger = logging.getLogger(__name__)

MAX_TYPING_MS = 15000
EMPTY_REPLY_WORDS = 10

FALLBACK_RESPONSES: Dict[str, Tuple[str, ...]] = {
    "greeting": (
        "Hello! Welcome to Magnetic Clouds support. How can I help you today?",
        "Hi there! I'm here to help with any questions about our hosting services.",
        "Welcome! I'd be happy to assist you with our cloud solutions.",
    ),
    "pricing": (
        "Our hosting plans start from $2.99/month for shared hosting. VPS starts at $14.99/month, "
        "and dedicated servers from $99/month. Would you like details on any specific plan?",
        "We have various pricing tiers to fit your needs. Shared hosting from $2.99/mo, VPS from "
        "$14.99/mo, Cloud from $19.99/mo. What type of hosting are you looking for?",
    ),
    "support": (
        "Our support team is available 24/7 via live chat, email at support@magneticclouds.com, "
        "or you can open a ticket from your dashboard.",
        "You can reach us anytime! We offer 24/7 support through chat, email, and our ticket "
        "system in the dashboard.",
    ),
    "domains": (
        "We offer domain registration starting from $9.99/year for .com domains. You can search "
        "for available domains on our Domains page.",
        "Domain prices vary by extension - .com is $9.99/yr, .net is $12.99/yr. Would you like "
        "to check availability for a specific domain?",
    ),
    "general": (
        "I understand. Could you please provide more details so I can assist you better?",
        "Thanks for reaching out. Let me help you with that. What specific information do you need?",
        "I'm here to help! Could you tell me more about what you're looking for?",
    ),
}

# Checked in order; first match wins. Stems match at the start of a word
# ("plans", "domains"), greetings only as whole words ("this" is not "hi").
CATEGORY_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("pricing", re.compile(r"\b(?:price|pricing|cost|plan)", re.IGNORECASE)),
    ("support", re.compile(r"\b(?:support|help|contact)", re.IGNORECASE)),
    ("domains", re.compile(r"\bdomain", re.IGNORECASE)),
    ("greeting", re.compile(r"\b(?:hi|hello|hey)\b", re.IGNORECASE)),
)
DEFAULT_CATEGORY = "general"


def classify(message: str) -> str:
    """Fallback category for a message."""
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(message or ""):
            return category
    return DEFAULT_CATEGORY


def fallback_response(message: str, rng: Optional[random.Random] = None) -> str:
    """Uniformly random canned reply from the message's category."""
    return (rng or random).choice(FALLBACK_RESPONSES[classify(message)])


def word_count(text: Optional[str]) -> int:
    return len(text.split()) if text and text.strip() else 0


def typing_duration_ms(text: Optional[str], reply_time_per_word: int) -> int:
    """How long the typing indicator shows before `text` appears (<= MAX_TYPING_MS)."""
    words = word_count(text) or EMPTY_REPLY_WORDS
    return max(0, min(words * reply_time_per_word, MAX_TYPING_MS))


@dataclass(frozen=True)
class ResolvedReply:
    text: str
    source: str  # "remote" or "fallback"
    category: Optional[str] = None

    @property
    def label(self) -> str:
        return f"fallback:{self.category}" if self.source == "fallback" else self.source


class ResponseResolver:
    """
    Chooses between the completion service and canned replies.

    Args:
        settings: Supplies the API key and its validation state
        client: Completion service client (a default one is built if omitted)
        rng: Random source for canned replies
    """

    def __init__(
        self,
        settings: SettingsStore,
        client: Optional[CompletionClient] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self.client = client or CompletionClient()
        self.rng = rng or random.Random()

    def has_usable_key(self) -> bool:
        """A key is usable once set, unless its last validation failed."""
        return self.settings.has_credential and self.settings.api_key_valid is not False

    def _fallback(self, message: str) -> ResolvedReply:
        category = classify(message)
        return ResolvedReply(self.rng.choice(FALLBACK_RESPONSES[category]), "fallback", category)

    async def resolve_reply(
        self,
        history: Sequence[Message],
        message: str,
        agent: Optional[AgentProfile],
        language: str = "en",
    ) -> ResolvedReply:
        if not self.has_usable_key() or agent is None:
            return self._fallback(message)

        chat_history: List[dict] = [m.to_dict() for m in list(history)[-MAX_HISTORY_MESSAGES:]]
        try:
            text = await self.client.chat(
                api_key=self.settings.api_key,
                message=message,
                agent_name=agent.name,
                agent_name_local=agent.name_local,
                language=language,
                chat_history=chat_history,
            )
        except SupportDeskError as e:
            if e.code == ErrorCode.COMPLETION_INVALID_KEY:
                # Stop calling out until an admin re-validates
                self.settings.mark_api_key_valid(False)
            log_activity(logger, ACTIVITY_ERROR, f"Chat error: {format_error_for_user(e)}")
            return self._fallback(message)
        except Exception as e:
            log_error(logger, e, context="resolver")
            log_activity(logger, ACTIVITY_ERROR, f"Chat error: {e}")
            return self._fallback(message)

        return ResolvedReply(text, "remote")

    async def resolve(
        self,
        history: Sequence[Message],
        message: str,
        agent: Optional[AgentProfile],
        language: str = "en",
    ) -> str:
        """Reply text for `message`. Never raises."""
        reply = await self.resolve_reply(history, message, agent, language)
        return reply.text
