"""Reply drafting: the policy's friendly fan reply and three-option drafts."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from dmpilot.agent.retrieval import EmbeddingIndex
from dmpilot.config import (
    DRAFT_OPTIONS_MAX_TOKENS,
    DRAFT_OPTIONS_TEMPERATURE,
    FRIENDLY_REPLY_MAX_TOKENS,
    FRIENDLY_REPLY_TEMPERATURE,
    RETRIEVAL_CONTEXT_LIMIT,
)
from dmpilot.errors import InvalidArgumentError, UpstreamError
from dmpilot.infrastructure.rate_limiter import check_and_increment
from dmpilot.llm.gateway import CompletionOptions, ModelGateway
from dmpilot.llm.prompts import render_prompt
from dmpilot.messaging.repository import UserRepository
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter
from dmpilot.utils.llm_text import parse_json_object, sanitize_prompt_text

logger = get_logger(__name__)

FRIENDLY_REPLY_FALLBACK = "Thanks for your message! I really appreciate your support! 💚"
FALLBACK_DRAFTS = (
    "Thanks for your message! I appreciate it.",
    "I'll get back to you soon.",
    "Got it, thanks!",
)


@dataclass(frozen=True)
class DraftOptions:
    drafts: list[str]
    context: list[str] = field(default_factory=list)
    fallback: bool = False


class ReplyDrafter:
    def __init__(
        self,
        gateway: ModelGateway,
        index: EmbeddingIndex | None = None,
        rate_limit: Callable[[str], object] = check_and_increment,
    ):
        self.gateway = gateway
        self.index = index or EmbeddingIndex(gateway)
        self.rate_limit = rate_limit

    def friendly_reply(self, text: str) -> str:
        """1-2 sentence warm reply to a fan; the fixed fallback on any failure."""
        prompt = render_prompt("friendly_reply", message=sanitize_prompt_text(text, max_length=2000))
        options = CompletionOptions(
            temperature=FRIENDLY_REPLY_TEMPERATURE,
            max_tokens=FRIENDLY_REPLY_MAX_TOKENS,
        )

        try:
            completion = self.gateway.complete(prompt, options)
        except UpstreamError as e:
            counter("dmpilot.drafting.friendly_fallback")
            logger.warning("Draft response failed: %s", e)
            return FRIENDLY_REPLY_FALLBACK

        reply = completion.content.strip() if completion.kind == "text" else ""
        if not reply:
            counter("dmpilot.drafting.friendly_fallback")
            return FRIENDLY_REPLY_FALLBACK
        return reply

    def reply_options(self, user_id: str, chat_id: str, message_text: str) -> DraftOptions:
        """
        Three reply options (friendly, professional, brief) in the user's voice.

        Raises:
            InvalidArgumentError: If chat_id or message_text is blank
            RateLimitExceeded: If the user's hourly AI quota is spent
            UpstreamError: If the drafting call itself fails
        """
        if not chat_id or not message_text or not message_text.strip():
            raise InvalidArgumentError("chatId and messageText are required")

        self.rate_limit(user_id)

        profile = UserRepository.get_profile(user_id)
        user_name = (profile.display_name if profile else None) or "User"

        similar = self.index.retrieve(user_id, message_text)
        context = [m.text for m in similar]
        voice_lines = "\n".join(
            f'- "{sanitize_prompt_text(text)}"' for text in context[:RETRIEVAL_CONTEXT_LIMIT]
        )
        voice_context = (
            f"EXAMPLES OF {user_name.upper()}'S PAST MESSAGES (for voice/tone reference):\n"
            f"{voice_lines}\n"
            if voice_lines
            else ""
        )

        prompt = render_prompt(
            "draft_options",
            user_name=sanitize_prompt_text(user_name, max_length=80),
            message=sanitize_prompt_text(message_text, max_length=2000),
            voice_context=voice_context,
        )
        completion = self.gateway.complete(
            prompt,
            CompletionOptions(
                temperature=DRAFT_OPTIONS_TEMPERATURE,
                max_tokens=DRAFT_OPTIONS_MAX_TOKENS,
                json_output=True,
            ),
        )

        data = parse_json_object(completion.content) if completion.kind == "text" else None
        drafts = [data.get(key) for key in ("draft1", "draft2", "draft3")] if data else []
        if len(drafts) != 3 or not all(isinstance(d, str) and d.strip() for d in drafts):
            counter("dmpilot.drafting.options_fallback")
            logger.warning("Could not parse draft options for chat %s", chat_id)
            return DraftOptions(drafts=list(FALLBACK_DRAFTS), context=context, fallback=True)

        counter("dmpilot.drafting.options_success")
        return DraftOptions(drafts=[d.strip() for d in drafts], context=context)
