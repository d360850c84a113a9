"""
Agent Orchestrator - one triage pass over a user's inbox.

For every chat the user is in, only the newest message from someone else is
considered. A message that already has a suggestion (any status) is never
looked at again, so repeated runs are idempotent. Each chat yields a
ChatOutcome and the outcomes are folded into the RunSummary.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import reduce

from dmpilot.agent.action_log import AgentActionLog
from dmpilot.agent.categorizer import MessageCategorizer
from dmpilot.agent.drafting import ReplyDrafter
from dmpilot.agent.faq_matcher import FAQMatcher
from dmpilot.agent.models import Categorization, ChatOutcome, LogAction, RunSummary
from dmpilot.agent.policy import decide
from dmpilot.agent.suggestions import SuggestionRepository
from dmpilot.config import AGENT_MAX_WORKERS, CATEGORIZE_BACKFILL_LIMIT
from dmpilot.errors import (
    AuthError,
    FailedPreconditionError,
    InvalidArgumentError,
    PermissionDeniedError,
    UpstreamError,
)
from dmpilot.infrastructure.rate_limiter import check_and_increment
from dmpilot.llm.gateway import ModelGateway
from dmpilot.messaging.models import Chat, Message, UserProfile
from dmpilot.messaging.repository import MessageRepository, UserRepository
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)


class AgentOrchestrator:
    def __init__(
        self,
        gateway: ModelGateway,
        max_workers: int = AGENT_MAX_WORKERS,
        rate_limit: Callable[[str], object] = check_and_increment,
    ):
        self.categorizer = MessageCategorizer(gateway)
        self.faq_matcher = FAQMatcher(gateway)
        self.drafter = ReplyDrafter(gateway, rate_limit=rate_limit)
        self.max_workers = max(1, max_workers)
        self.rate_limit = rate_limit

    def run_agent(self, caller_id: str | None, user_id: str | None) -> RunSummary:
        """
        Triage the newest incoming message of each of the user's chats.

        Raises:
            AuthError: No authenticated caller
            InvalidArgumentError: No user id
            PermissionDeniedError: Caller is not the user
            FailedPreconditionError: The user has not enabled the agent
            RateLimitExceeded: The user's hourly AI quota is spent

        Side Effects:
            - Annotates uncategorized messages (write-once)
            - Creates pending suggestions and audit log entries
            - One quota unit is charged per run
        """
        if not caller_id:
            raise AuthError("User must be logged in")
        if not user_id:
            raise InvalidArgumentError("userId is required")
        if caller_id != user_id:
            raise PermissionDeniedError("Can only run agent for yourself")
        if not UserRepository.is_agent_enabled(user_id):
            raise FailedPreconditionError("Agent is not enabled. Enable it in settings first.")

        self.rate_limit(user_id)

        logger.info("Running agent for user %s", user_id)
        with time_block("dmpilot.agent.run"):
            chats = MessageRepository.list_chats_for_user(user_id)
            if self.max_workers == 1 or len(chats) <= 1:
                outcomes = [self._process_chat(user_id, chat) for chat in chats]
            else:
                with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                    outcomes = list(pool.map(lambda chat: self._process_chat(user_id, chat), chats))

        summary = reduce(RunSummary.add, outcomes, RunSummary())

        counter("dmpilot.agent.runs")
        log_event(
            "dmpilot.agent.run_complete",
            user_id=user_id,
            chats=len(chats),
            messages_processed=summary.messages_processed,
            actions_suggested=summary.actions_suggested,
            errors=summary.errors,
        )
        return summary

    def _process_chat(self, user_id: str, chat: Chat) -> ChatOutcome:
        try:
            message = MessageRepository.latest_incoming_message(chat.id, user_id)
            if message is None or not message.is_text:
                return ChatOutcome.skipped()
            if SuggestionRepository.exists_for_message(user_id, message.id):
                return ChatOutcome.skipped()
        except Exception as e:
            counter("dmpilot.agent.chat_error")
            logger.error("Failed to process chat %s: %s", chat.id, e)
            return ChatOutcome.failed()

        try:
            suggested = self._process_message(user_id, message)
        except Exception as e:
            counter("dmpilot.agent.message_error")
            logger.error("Failed to process message %s: %s", message.id, e)
            return ChatOutcome.failed(processed=1)

        return ChatOutcome(processed=1, suggested=int(suggested))

    def _process_message(self, user_id: str, message: Message) -> bool:
        """Triage one message; True if a suggestion was created."""
        sender = self._sender_profile(message.sender_id)

        if not message.is_categorized:
            message = self._categorize(user_id, message)

        faq_match = self.faq_matcher.match(user_id, message.text)
        directive = decide(
            faq_match,
            message.category,
            message.sentiment,
            message.collaboration_score,
            draft_reply=lambda: self.drafter.friendly_reply(message.text),
        )
        if directive is None:
            return False

        suggestion = SuggestionRepository.create(user_id, directive, message, sender)
        if suggestion is None:
            # Another run staged one first
            return False

        AgentActionLog.append(
            user_id,
            LogAction(directive.action.value),
            message.id,
            message.chat_id,
            directive.log_result,
        )
        return True

    def categorize_pending(self, user_id: str, limit: int = CATEGORIZE_BACKFILL_LIMIT) -> int:
        """
        Categorize the user's incoming text messages that have no annotations.

        Charges one quota unit per call. Stops at the first gateway failure
        so an outage never stamps default categories onto messages.

        Returns:
            Number of messages newly annotated
        """
        self.rate_limit(user_id)

        count = 0
        for message in MessageRepository.uncategorized_incoming_messages(user_id, limit):
            try:
                result = self.categorizer.classify(message.text)
            except UpstreamError as e:
                logger.warning("Categorization backfill stopped after %d messages: %s", count, e)
                break
            if self._annotate(user_id, message, result):
                count += 1

        counter("dmpilot.agent.categorize_backfill")
        log_event("dmpilot.agent.categorize_backfill", user_id=user_id, categorized=count)
        return count

    def _categorize(self, user_id: str, message: Message) -> Message:
        result = self.categorizer.categorize(message.text)
        if not self._annotate(user_id, message, result):
            # Annotations are write-once; use whatever got there first
            return MessageRepository.get_message(message.id) or message

        return message.model_copy(
            update={
                "category": result.category.value,
                "sentiment": result.sentiment.value,
                "collaboration_score": result.collaboration_score,
            }
        )

    @staticmethod
    def _annotate(user_id: str, message: Message, result: Categorization) -> bool:
        stored = MessageRepository.annotate(
            message.id,
            result.category,
            result.sentiment.value,
            result.collaboration_score,
        )
        if stored:
            AgentActionLog.append(
                user_id,
                LogAction.CATEGORIZE,
                message.id,
                message.chat_id,
                f"Categorized as {result.category.value} "
                f"({result.sentiment.value}, score {result.collaboration_score})",
            )
        return stored

    @staticmethod
    def _sender_profile(sender_id: str) -> UserProfile | None:
        try:
            return UserRepository.get_profile(sender_id)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed to fetch sender details for %s: %s", sender_id, e)
            return None
