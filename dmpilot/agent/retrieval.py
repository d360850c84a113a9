"""
Embedding index over the messages a user has written.

Reply drafting uses it to find the user's own past messages closest to an
incoming one, so drafts can imitate the user's voice. Vectors are stored as
JSON in the message_embeddings table; ranking is brute-force cosine over the
user's most recent embeddings.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass

from dmpilot.config import EMBEDDING_SNIPPET_CHARS, RETRIEVAL_CANDIDATE_LIMIT
from dmpilot.errors import DegenerateVector, DimensionMismatch, UpstreamError
from dmpilot.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from dmpilot.llm.gateway import ModelGateway, cosine_similarity
from dmpilot.messaging.models import Message
from dmpilot.messaging.repository import MessageRepository
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter
from dmpilot.utils.timestamps import to_db_timestamp

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetrievedMessage:
    message_id: str
    chat_id: str
    text: str
    similarity: float


class EmbeddingIndex:
    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def index_message(self, message: Message) -> bool:
        """
        Embed and store one message under its sender.

        Returns:
            False for non-text or blank messages (nothing stored)

        Raises:
            UpstreamError: If the embedding call fails
        """
        if not message.is_text or not message.text.strip():
            return False

        self._store(message, self.gateway.embed(message.text))
        counter("dmpilot.retrieval.indexed")
        return True

    @staticmethod
    @retry_on_db_lock()
    def _store(message: Message, vector: list[float]) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO message_embeddings
                    (user_id, message_id, chat_id, embedding, text_snippet, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, message_id) DO UPDATE SET
                    embedding = excluded.embedding,
                    text_snippet = excluded.text_snippet
                """,
                (
                    message.sender_id,
                    message.id,
                    message.chat_id,
                    json.dumps(vector),
                    message.text[:EMBEDDING_SNIPPET_CHARS],
                    to_db_timestamp(message.timestamp),
                ),
            )

    def backfill(self, user_id: str, limit: int = RETRIEVAL_CANDIDATE_LIMIT) -> int:
        """
        Index the user's recent messages that have no embedding yet.

        Stops at the first embedding failure; what was stored stays stored.

        Returns:
            Number of messages newly indexed
        """
        with get_db_connection() as conn:
            indexed = {
                row["message_id"]
                for row in conn.execute(
                    "SELECT message_id FROM message_embeddings WHERE user_id = ?", (user_id,)
                )
            }

        pending = [
            m for m in MessageRepository.text_messages_sent_by(user_id, limit) if m.id not in indexed
        ]

        count = 0
        for message in pending:
            try:
                if self.index_message(message):
                    count += 1
            except UpstreamError as e:
                logger.warning("Embedding backfill stopped after %d messages: %s", count, e)
                break

        logger.info("Backfilled %d embeddings for user %s", count, user_id)
        return count

    def retrieve(self, user_id: str, text: str, limit: int = 10) -> list[RetrievedMessage]:
        """
        The user's stored messages most similar to `text`, best first.

        Returns an empty list if the query can't be embedded or storage fails.
        """
        try:
            query_vector = self.gateway.embed(text)

            with get_db_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT message_id, chat_id, embedding, text_snippet
                    FROM message_embeddings
                    WHERE user_id = ?
                    ORDER BY timestamp DESC
                    LIMIT ?
                    """,
                    (user_id, RETRIEVAL_CANDIDATE_LIMIT),
                ).fetchall()
        except (UpstreamError, sqlite3.Error, OSError) as e:
            counter("dmpilot.retrieval.failed")
            logger.warning("Retrieval failed for user %s: %s", user_id, e)
            return []

        scored: list[RetrievedMessage] = []
        for row in rows:
            try:
                similarity = cosine_similarity(query_vector, json.loads(row["embedding"]))
            except (DimensionMismatch, DegenerateVector, json.JSONDecodeError) as e:
                logger.warning("Skipping embedding for message %s: %s", row["message_id"], e)
                continue
            scored.append(
                RetrievedMessage(
                    message_id=row["message_id"],
                    chat_id=row["chat_id"],
                    text=row["text_snippet"],
                    similarity=similarity,
                )
            )

        scored.sort(key=lambda r: r.similarity, reverse=True)
        return scored[:limit]
