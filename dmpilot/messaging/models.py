"""
Domain models for the direct-message store.

Messages are owned by the chat transport; the agent only reads them and adds
AI annotations (category, sentiment, collaboration score) once.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dmpilot.utils.timestamps import from_db_timestamp, utc_now


class MessageCategory(str, Enum):
    """Triage bucket assigned by the categorizer."""

    FAN = "fan"
    BUSINESS = "business"
    SPAM = "spam"
    URGENT = "urgent"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    SYSTEM = "system"


class Message(BaseModel):
    """A single DM, plus its write-once AI annotations."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    chat_id: str
    sender_id: str
    text: str | None = None
    type: str = MessageType.TEXT.value
    timestamp: datetime = Field(default_factory=utc_now)

    category: MessageCategory | None = None
    sentiment: Sentiment | None = None
    collaboration_score: int | None = Field(default=None, ge=1, le=10)

    @property
    def is_categorized(self) -> bool:
        return self.category is not None

    @property
    def is_text(self) -> bool:
        return self.type == MessageType.TEXT and bool(self.text)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Message:
        return cls(
            id=row["id"],
            chat_id=row["chat_id"],
            sender_id=row["sender_id"],
            text=row.get("text"),
            type=row.get("type") or MessageType.TEXT.value,
            timestamp=from_db_timestamp(row["timestamp"]),
            category=row.get("ai_category"),
            sentiment=row.get("ai_sentiment"),
            collaboration_score=row.get("ai_collaboration_score"),
        )


class Chat(BaseModel):
    id: str
    name: str | None = None
    participant_ids: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or "Direct Message"


class UserProfile(BaseModel):
    id: str
    display_name: str | None = None
    photo_url: str | None = None
    agent_enabled: bool = False


class FAQ(BaseModel):
    """A canned question/answer pair the agent may suggest as a reply."""

    id: str
    user_id: str
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> FAQ:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            question=row["question"],
            answer=row["answer"],
            created_at=from_db_timestamp(row["created_at"]),
        )
