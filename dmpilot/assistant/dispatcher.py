"""
Assistant Dispatcher - answers free-text questions about the user's DMs.

The question is routed by keyword (see intents.INTENT_KEYWORDS); each branch
runs a read-only tool and renders a fixed-format answer. Questions no branch
handles go to the model. A search question with no extractable term falls
through to the next matching branch.
"""

from __future__ import annotations

from collections.abc import Callable

from dmpilot.assistant import tools
from dmpilot.assistant.intents import (
    Intent,
    describe_time_period,
    extract_category,
    extract_search_term,
    extract_time_period,
    matching_intents,
)
from dmpilot.assistant.transcript import TranscriptRepository, TranscriptRole
from dmpilot.config import (
    ASSISTANT_MAX_TOKENS,
    ASSISTANT_TEMPERATURE,
    BUSINESS_TOP_CHATS,
    PRIORITY_CHAT_LIMIT,
    SEARCH_RESULT_LIMIT,
)
from dmpilot.errors import AuthError, InvalidArgumentError, PermissionDeniedError
from dmpilot.infrastructure.rate_limiter import check_and_increment
from dmpilot.llm.gateway import CompletionOptions, ModelGateway
from dmpilot.llm.prompts import render_prompt
from dmpilot.messaging.models import MessageCategory
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter, log_event
from dmpilot.utils.llm_text import sanitize_prompt_text

logger = get_logger(__name__)

APOLOGY = "Sorry, I encountered an error processing your request. Please try again."
NO_PRIORITY_CHATS = (
    "You don't have any high-priority messages at the moment. "
    "Great job staying on top of things! 🎉"
)


def _excerpt(text: str) -> str:
    return f'"{text[:100]}..."'


class AssistantDispatcher:
    def __init__(
        self,
        gateway: ModelGateway,
        rate_limit: Callable[[str], object] = check_and_increment,
    ):
        self.gateway = gateway
        self.rate_limit = rate_limit
        self._handlers: dict[Intent, Callable[[str, str], str | None]] = {
            Intent.SEARCH: self._search,
            Intent.SUMMARIZE: self._summarize,
            Intent.STATS: self._stats,
            Intent.PRIORITY: self._priority,
            Intent.BUSINESS: self._business,
        }

    def send_message(self, caller_id: str | None, user_id: str | None, message: str | None) -> dict:
        """
        Answer one assistant question and record both sides of the exchange.

        Raises:
            AuthError: No authenticated caller
            InvalidArgumentError: Missing user id or message
            PermissionDeniedError: Caller is not the user
            RateLimitExceeded: Hourly AI quota spent (nothing is recorded)
        """
        if not caller_id:
            raise AuthError("User must be logged in")
        if not user_id or not message or not message.strip():
            raise InvalidArgumentError("userId and message are required")
        if caller_id != user_id:
            raise PermissionDeniedError("Can only chat for yourself")

        self.rate_limit(user_id)
        logger.info("Assistant message received: user=%s length=%d", user_id, len(message))

        TranscriptRepository.append(user_id, TranscriptRole.USER, message)
        response = self.answer(user_id, message)
        TranscriptRepository.append(user_id, TranscriptRole.ASSISTANT, response)

        log_event("dmpilot.assistant.response", user_id=user_id, length=len(response))
        return {"response": response}

    def answer(self, user_id: str, message: str) -> str:
        """Route the question and render an answer; the apology on any failure."""
        try:
            for intent in matching_intents(message):
                response = self._handlers[intent](user_id, message)
                if response is not None:
                    counter(f"dmpilot.assistant.intent.{intent.value}")
                    return response

            counter(f"dmpilot.assistant.intent.{Intent.GENERAL.value}")
            return self._general(message)
        except Exception as e:
            counter("dmpilot.assistant.error")
            logger.error("Assistant message processing failed for user %s: %s", user_id, e)
            return APOLOGY

    def _search(self, user_id: str, message: str) -> str | None:
        term = extract_search_term(message)
        if not term:
            return None

        hits = tools.search_conversations(user_id, term, SEARCH_RESULT_LIMIT)
        if not hits:
            return f'I couldn\'t find any messages containing "{term}".'

        lines = [f'Found {len(hits)} message(s) containing "{term}":', ""]
        lines += [f"{i}. {hit.chat_name}: {_excerpt(hit.text)}" for i, hit in enumerate(hits, 1)]
        return "\n".join(lines) + "\n"

    def _summarize(self, user_id: str, message: str) -> str:
        days = extract_time_period(message)
        stats = tools.get_message_stats(user_id, extract_category(message), days)
        categories, sentiments = stats.category_counts, stats.sentiment_counts

        return "\n".join(
            [
                f"Here's a summary of your DMs from {describe_time_period(days)}:",
                "",
                f"📊 Total messages received: {stats.total_messages}",
                "",
                "📂 By Category:",
                f"  • Fan messages: {categories.get('fan', 0)}",
                f"  • Business: {categories.get('business', 0)}",
                f"  • Urgent: {categories.get('urgent', 0)}",
                f"  • Spam: {categories.get('spam', 0)}",
                "",
                f"🌟 High-priority opportunities: {stats.high_priority_count}",
                "",
                "😊 Sentiment breakdown:",
                f"  • Positive: {sentiments.get('positive', 0)}",
                f"  • Neutral: {sentiments.get('neutral', 0)}",
                f"  • Negative: {sentiments.get('negative', 0)}",
            ]
        )

    def _stats(self, user_id: str, message: str) -> str:
        days = extract_time_period(message)
        stats = tools.get_message_stats(user_id, extract_category(message), days)
        categories, sentiments = stats.category_counts, stats.sentiment_counts

        return "\n".join(
            [
                f"📊 **Your DM Statistics ({describe_time_period(days, title=True)})**",
                "",
                f"Total messages: {stats.total_messages}",
                "",
                "**By Category:**",
                f"• Fan messages: {categories.get('fan', 0)}",
                f"• Business: {categories.get('business', 0)}",
                f"• Urgent: {categories.get('urgent', 0)}",
                f"• Spam: {categories.get('spam', 0)}",
                "",
                f"**High Priority:** {stats.high_priority_count} opportunities",
                "",
                "**Sentiment:**",
                f"• Positive: {sentiments.get('positive', 0)}",
                f"• Neutral: {sentiments.get('neutral', 0)}",
                f"• Negative: {sentiments.get('negative', 0)}",
            ]
        )

    def _priority(self, user_id: str, message: str) -> str:
        chats = tools.list_high_priority_chats(user_id, PRIORITY_CHAT_LIMIT)
        if not chats:
            return NO_PRIORITY_CHATS

        lines = ["🌟 **High-Priority Chats** (Collaboration Score > 7):", ""]
        for i, chat in enumerate(chats, 1):
            lines += [
                f"{i}. **{chat.chat_name}** (Score: {chat.score}/10)",
                f"   Category: {chat.category}",
                f"   {_excerpt(chat.last_message)}",
                "",
            ]
        return "\n".join(lines) + "\n"

    def _business(self, user_id: str, message: str) -> str:
        days = extract_time_period(message)
        stats = tools.get_message_stats(user_id, MessageCategory.BUSINESS, days)
        top = tools.list_high_priority_chats(user_id, BUSINESS_TOP_CHATS)

        lines = [
            "💼 **Business Opportunities**",
            "",
            f"You have {stats.category_counts.get('business', 0)} business messages "
            f"in {describe_time_period(days)}.",
            "",
        ]
        if top:
            lines.append("**Top Opportunities:**")
            lines += [f"{i}. {c.chat_name} (Score: {c.score}/10)" for i, c in enumerate(top, 1)]
            return "\n".join(lines) + "\n"

        lines.append("No high-priority business opportunities at the moment.")
        return "\n".join(lines)

    def _general(self, message: str) -> str:
        prompt = render_prompt(
            "assistant_general", question=sanitize_prompt_text(message, max_length=1000)
        )
        completion = self.gateway.complete(
            prompt,
            CompletionOptions(temperature=ASSISTANT_TEMPERATURE, max_tokens=ASSISTANT_MAX_TOKENS),
        )
        return completion.content.strip() or APOLOGY
