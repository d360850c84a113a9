"""
Repositories for chats, messages, user profiles and FAQs.

Follows the database patterns in dmpilot/infrastructure/database.py: static
methods, pooled connections, writes inside db_transaction().
"""

from __future__ import annotations

import uuid
from datetime import datetime

from dmpilot.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from dmpilot.messaging.models import FAQ, Chat, Message, MessageCategory, MessageType, UserProfile
from dmpilot.observability.logging import get_logger
from dmpilot.utils.timestamps import to_db_timestamp, utc_now

logger = get_logger(__name__)


class MessageRepository:
    """Chats, participants and messages."""

    @staticmethod
    @retry_on_db_lock()
    def create_chat(
        participant_ids: list[str],
        name: str | None = None,
        chat_id: str | None = None,
    ) -> Chat:
        chat = Chat(id=chat_id or str(uuid.uuid4()), name=name, participant_ids=participant_ids)

        with db_transaction() as conn:
            conn.execute(
                "INSERT INTO chats (id, name, created_at) VALUES (?, ?, ?)",
                (chat.id, chat.name, to_db_timestamp(utc_now())),
            )
            conn.executemany(
                "INSERT INTO chat_participants (chat_id, user_id) VALUES (?, ?)",
                [(chat.id, user_id) for user_id in participant_ids],
            )

        return chat

    @staticmethod
    @retry_on_db_lock()
    def add_message(
        chat_id: str,
        sender_id: str,
        text: str | None,
        message_type: str = MessageType.TEXT.value,
        timestamp: datetime | None = None,
        message_id: str | None = None,
    ) -> Message:
        message = Message(
            id=message_id or str(uuid.uuid4()),
            chat_id=chat_id,
            sender_id=sender_id,
            text=text,
            type=message_type,
            timestamp=timestamp or utc_now(),
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO messages (id, chat_id, sender_id, text, type, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    message.chat_id,
                    message.sender_id,
                    message.text,
                    message.type,
                    to_db_timestamp(message.timestamp),
                ),
            )

        return message

    @staticmethod
    def get_message(message_id: str) -> Message | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
        return Message.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_chats_for_user(user_id: str) -> list[Chat]:
        """Chats where `user_id` is a participant, oldest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT c.id, c.name, GROUP_CONCAT(all_p.user_id) AS participants
                FROM chats c
                JOIN chat_participants me ON me.chat_id = c.id AND me.user_id = ?
                JOIN chat_participants all_p ON all_p.chat_id = c.id
                GROUP BY c.id
                ORDER BY c.created_at, c.id
                """,
                (user_id,),
            ).fetchall()

        return [
            Chat(id=row["id"], name=row["name"], participant_ids=row["participants"].split(","))
            for row in rows
        ]

    @staticmethod
    def latest_incoming_message(chat_id: str, user_id: str) -> Message | None:
        """Most recent message in the chat not sent by `user_id`."""
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM messages
                WHERE chat_id = ? AND sender_id != ?
                ORDER BY timestamp DESC
                LIMIT 1
                """,
                (chat_id, user_id),
            ).fetchone()
        return Message.from_db_row(dict(row)) if row else None

    @staticmethod
    def last_message(chat_id: str) -> Message | None:
        """Most recent message in the chat from any sender."""
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM messages WHERE chat_id = ? ORDER BY timestamp DESC LIMIT 1",
                (chat_id,),
            ).fetchone()
        return Message.from_db_row(dict(row)) if row else None

    @staticmethod
    def recent_text_messages(chat_id: str, limit: int) -> list[Message]:
        """Newest-first text messages of a chat."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM messages
                WHERE chat_id = ? AND type = ?
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (chat_id, MessageType.TEXT.value, limit),
            ).fetchall()
        return [Message.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def incoming_messages_since(
        user_id: str,
        since: datetime,
        category: MessageCategory | str | None = None,
    ) -> list[Message]:
        """Messages sent to `user_id` (in any of their chats) at or after `since`."""
        query = """
            SELECT m.* FROM messages m
            JOIN chat_participants p ON p.chat_id = m.chat_id AND p.user_id = ?
            WHERE m.sender_id != ? AND m.timestamp >= ?
        """
        params: list[object] = [user_id, user_id, to_db_timestamp(since)]
        if category is not None:
            query += " AND m.ai_category = ?"
            params.append(MessageCategory(category).value)
        query += " ORDER BY m.timestamp DESC"

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Message.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def uncategorized_incoming_messages(user_id: str, limit: int) -> list[Message]:
        """Newest-first text messages sent to the user that have no AI annotations."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT m.* FROM messages m
                JOIN chat_participants p ON p.chat_id = m.chat_id AND p.user_id = ?
                WHERE m.sender_id != ? AND m.type = ? AND m.ai_category IS NULL
                  AND m.text IS NOT NULL AND m.text != ''
                ORDER BY m.timestamp DESC
                LIMIT ?
                """,
                (user_id, user_id, MessageType.TEXT.value, limit),
            ).fetchall()
        return [Message.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def text_messages_sent_by(user_id: str, limit: int) -> list[Message]:
        """Newest-first text messages the user wrote, across all chats."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM messages
                WHERE sender_id = ? AND type = ? AND text IS NOT NULL AND text != ''
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (user_id, MessageType.TEXT.value, limit),
            ).fetchall()
        return [Message.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def annotate(
        message_id: str,
        category: MessageCategory | str,
        sentiment: str,
        collaboration_score: int,
    ) -> bool:
        """
        Store AI annotations on a message that has none yet.

        Returns:
            False if the message was already annotated (existing values kept)
        """
        with db_transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE messages
                SET ai_category = ?, ai_sentiment = ?, ai_collaboration_score = ?,
                    ai_categorized_at = ?
                WHERE id = ? AND ai_category IS NULL
                """,
                (
                    MessageCategory(category).value,
                    sentiment,
                    collaboration_score,
                    to_db_timestamp(utc_now()),
                    message_id,
                ),
            )
            return cursor.rowcount == 1


class UserRepository:
    """Profiles and per-user agent settings."""

    @staticmethod
    def get_profile(user_id: str) -> UserProfile | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

        if not row:
            return None

        return UserProfile(
            id=row["id"],
            display_name=row["display_name"],
            photo_url=row["photo_url"],
            agent_enabled=bool(row["agent_enabled"]),
        )

    @staticmethod
    @retry_on_db_lock()
    def upsert_profile(
        user_id: str,
        display_name: str | None = None,
        photo_url: str | None = None,
    ) -> UserProfile:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO users (id, display_name, photo_url, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    display_name = excluded.display_name,
                    photo_url = excluded.photo_url
                """,
                (user_id, display_name, photo_url, to_db_timestamp(utc_now())),
            )

        profile = UserRepository.get_profile(user_id)
        if profile is None:
            raise RuntimeError(f"Profile {user_id} missing right after upsert")
        return profile

    @staticmethod
    def is_agent_enabled(user_id: str) -> bool:
        """Users without a settings row have the agent off."""
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT agent_enabled FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return bool(row and row["agent_enabled"] == 1)

    @staticmethod
    @retry_on_db_lock()
    def set_agent_enabled(user_id: str, enabled: bool) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO users (id, agent_enabled, created_at) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET agent_enabled = excluded.agent_enabled
                """,
                (user_id, int(enabled), to_db_timestamp(utc_now())),
            )
        logger.info("Agent %s for user %s", "enabled" if enabled else "disabled", user_id)


class FAQRepository:
    """A user's FAQ list. Order of creation is the order shown to the matcher."""

    @staticmethod
    def list_for_user(user_id: str) -> list[FAQ]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM faqs WHERE user_id = ? ORDER BY created_at, id",
                (user_id,),
            ).fetchall()
        return [FAQ.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, question: str, answer: str) -> FAQ:
        faq = FAQ(id=str(uuid.uuid4()), user_id=user_id, question=question, answer=answer)

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO faqs (id, user_id, question, answer, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (faq.id, faq.user_id, faq.question, faq.answer, to_db_timestamp(faq.created_at)),
            )

        logger.info("Created FAQ %s for user %s", faq.id, user_id)
        return faq

    @staticmethod
    @retry_on_db_lock()
    def delete(user_id: str, faq_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM faqs WHERE id = ? AND user_id = ?", (faq_id, user_id)
            )
            return cursor.rowcount > 0
