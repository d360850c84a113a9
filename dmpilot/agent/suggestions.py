"""
Suggestion Repository - lifecycle of suggested_actions rows.

    pending --approve--> approved
    pending --reject---> rejected

A message gets at most one suggestion per user, ever: the UNIQUE(user_id,
message_id) index makes create() an atomic insert-if-absent, so concurrent
agent runs cannot double-suggest. Terminal suggestions are never changed.
"""

from __future__ import annotations

import uuid

from dmpilot.agent.models import Directive, SuggestedAction, SuggestionStatus
from dmpilot.config import API_LIST_LIMIT_DEFAULT
from dmpilot.errors import SuggestionConflictError
from dmpilot.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from dmpilot.messaging.models import Message, UserProfile
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter
from dmpilot.utils.timestamps import to_db_timestamp, utc_now

logger = get_logger(__name__)


class SuggestionRepository:
    @staticmethod
    def exists_for_message(user_id: str, message_id: str) -> bool:
        """True if the message already has a suggestion in any status."""
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM suggested_actions WHERE user_id = ? AND message_id = ?",
                (user_id, message_id),
            ).fetchone()
        return row is not None

    @staticmethod
    @retry_on_db_lock()
    def create(
        user_id: str,
        directive: Directive,
        message: Message,
        sender: UserProfile | None = None,
    ) -> SuggestedAction | None:
        """
        Stage a pending suggestion for `message`.

        Returns:
            The new SuggestedAction, or None if one already existed for the
            message (nothing written)
        """
        now = utc_now()
        suggestion = SuggestedAction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=directive.action,
            message_id=message.id,
            chat_id=message.chat_id,
            sender_id=message.sender_id,
            sender_name=sender.display_name if sender else None,
            sender_photo_url=sender.photo_url if sender else None,
            message_text=message.text,
            message_timestamp=message.timestamp,
            suggested_text=directive.suggested_text,
            reasoning=directive.reasoning,
            status=SuggestionStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        with db_transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO suggested_actions (
                    id, user_id, type, message_id, chat_id, sender_id, sender_name,
                    sender_photo_url, message_text, message_timestamp, suggested_text,
                    reasoning, status, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :type, :message_id, :chat_id, :sender_id, :sender_name,
                    :sender_photo_url, :message_text, :message_timestamp, :suggested_text,
                    :reasoning, :status, :created_at, :updated_at
                )
                ON CONFLICT(user_id, message_id) DO NOTHING
                """,
                suggestion.to_db_dict(),
            )
            created = cursor.rowcount == 1

        if not created:
            counter("dmpilot.suggestions.duplicate")
            logger.info("Suggestion already exists for message %s", message.id)
            return None

        counter(f"dmpilot.suggestions.created.{suggestion.type}")
        logger.info("Created %s suggestion %s for user %s", suggestion.type, suggestion.id, user_id)
        return suggestion

    @staticmethod
    def get(user_id: str, action_id: str) -> SuggestedAction | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM suggested_actions WHERE id = ? AND user_id = ?",
                (action_id, user_id),
            ).fetchone()
        return SuggestedAction.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_for_user(
        user_id: str,
        status: SuggestionStatus | None = None,
        limit: int = API_LIST_LIMIT_DEFAULT,
    ) -> list[SuggestedAction]:
        """Newest first, optionally filtered by status."""
        query = "SELECT * FROM suggested_actions WHERE user_id = ?"
        params: list[object] = [user_id]
        if status is not None:
            query += " AND status = ?"
            params.append(SuggestionStatus(status).value)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [SuggestedAction.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def approve(user_id: str, action_id: str) -> bool:
        return SuggestionRepository._transition(user_id, action_id, SuggestionStatus.APPROVED)

    @staticmethod
    def reject(user_id: str, action_id: str) -> bool:
        return SuggestionRepository._transition(user_id, action_id, SuggestionStatus.REJECTED)

    @staticmethod
    @retry_on_db_lock()
    def _transition(user_id: str, action_id: str, target: SuggestionStatus) -> bool:
        """
        Move a pending suggestion to a terminal status.

        Returns:
            False if no suggestion with this id belongs to the user

        Raises:
            SuggestionConflictError: If the suggestion is no longer pending
                (status and timestamps are left untouched)
        """
        with db_transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE suggested_actions
                SET status = ?, updated_at = ?
                WHERE id = ? AND user_id = ? AND status = ?
                """,
                (
                    target.value,
                    to_db_timestamp(utc_now()),
                    action_id,
                    user_id,
                    SuggestionStatus.PENDING.value,
                ),
            )
            if cursor.rowcount == 1:
                counter(f"dmpilot.suggestions.{target.value}")
                logger.info("Suggestion %s %s by user %s", action_id, target.value, user_id)
                return True

            row = conn.execute(
                "SELECT status FROM suggested_actions WHERE id = ? AND user_id = ?",
                (action_id, user_id),
            ).fetchone()

        if row is None:
            logger.warning("Suggestion %s not found for user %s", action_id, user_id)
            return False

        counter("dmpilot.suggestions.conflict")
        raise SuggestionConflictError(f"Suggestion is already {row['status']}")
