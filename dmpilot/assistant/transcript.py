"""Per-user transcript of assistant questions and answers."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from dmpilot.config import API_LIST_LIMIT_DEFAULT
from dmpilot.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from dmpilot.utils.timestamps import from_db_timestamp, to_db_timestamp, utc_now


class TranscriptRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TranscriptEntry(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    role: TranscriptRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class TranscriptRepository:
    @staticmethod
    @retry_on_db_lock()
    def append(user_id: str, role: TranscriptRole, content: str) -> TranscriptEntry:
        entry = TranscriptEntry(id=str(uuid.uuid4()), user_id=user_id, role=role, content=content)

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO ai_chat_history (id, user_id, role, content, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (entry.id, entry.user_id, entry.role, entry.content, to_db_timestamp(entry.timestamp)),
            )

        return entry

    @staticmethod
    def list_recent(user_id: str, limit: int = API_LIST_LIMIT_DEFAULT) -> list[TranscriptEntry]:
        """The latest `limit` entries, oldest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM ai_chat_history
                WHERE user_id = ?
                ORDER BY timestamp DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()

        return [
            TranscriptEntry(**{**dict(row), "timestamp": from_db_timestamp(row["timestamp"])})
            for row in reversed(rows)
        ]
