"""
Agent domain models.

A run never acts on a message directly. It stages a SuggestedAction the user
approves or rejects, and writes an AgentLogEntry for every step it takes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dmpilot.messaging.models import MessageCategory, Sentiment
from dmpilot.utils.timestamps import from_db_timestamp, to_db_timestamp, utc_now


class ActionType(str, Enum):
    """What the agent proposes to do with a message."""

    RESPOND = "respond"
    ARCHIVE = "archive"
    FLAG = "flag"


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"  # terminal
    REJECTED = "rejected"  # terminal


class LogAction(str, Enum):
    CATEGORIZE = "categorize"
    RESPOND = "respond"
    ARCHIVE = "archive"
    FLAG = "flag"


@dataclass(frozen=True)
class Categorization:
    category: MessageCategory
    sentiment: Sentiment
    collaboration_score: int

    @classmethod
    def default(cls) -> Categorization:
        """Used whenever the model's answer can't be trusted."""
        return cls(
            category=MessageCategory.FAN,
            sentiment=Sentiment.NEUTRAL,
            collaboration_score=1,
        )


@dataclass(frozen=True)
class FAQMatch:
    faq_id: str
    question: str
    answer: str


@dataclass(frozen=True)
class Directive:
    """Policy output: the suggestion to stage and the audit text to log."""

    action: ActionType
    reasoning: str
    log_result: str
    suggested_text: str | None = None


class SuggestedAction(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    type: ActionType
    message_id: str
    chat_id: str
    sender_id: str
    sender_name: str | None = None
    sender_photo_url: str | None = None
    message_text: str | None = None
    message_timestamp: datetime | None = None
    suggested_text: str | None = None
    reasoning: str
    status: SuggestionStatus = SuggestionStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "message_id": self.message_id,
            "chat_id": self.chat_id,
            "sender_id": self.sender_id,
            "sender_name": self.sender_name,
            "sender_photo_url": self.sender_photo_url,
            "message_text": self.message_text,
            "message_timestamp": (
                to_db_timestamp(self.message_timestamp) if self.message_timestamp else None
            ),
            "suggested_text": self.suggested_text,
            "reasoning": self.reasoning,
            "status": self.status,
            "created_at": to_db_timestamp(self.created_at),
            "updated_at": to_db_timestamp(self.updated_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> SuggestedAction:
        return cls(
            **{
                **row,
                "message_timestamp": from_db_timestamp(row.get("message_timestamp")),
                "created_at": from_db_timestamp(row["created_at"]),
                "updated_at": from_db_timestamp(row["updated_at"]),
            }
        )


class AgentLogEntry(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    user_id: str
    action: LogAction
    message_id: str
    chat_id: str
    result: str
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> AgentLogEntry:
        return cls(**{**row, "timestamp": from_db_timestamp(row["timestamp"])})


@dataclass(frozen=True)
class ChatOutcome:
    """What processing one chat contributed to a run."""

    processed: int = 0
    suggested: int = 0
    errors: int = 0

    @classmethod
    def skipped(cls) -> ChatOutcome:
        return cls()

    @classmethod
    def failed(cls, processed: int = 0) -> ChatOutcome:
        return cls(processed=processed, errors=1)


@dataclass(frozen=True)
class RunSummary:
    messages_processed: int = 0
    actions_suggested: int = 0
    errors: int = 0

    def add(self, outcome: ChatOutcome) -> RunSummary:
        return RunSummary(
            messages_processed=self.messages_processed + outcome.processed,
            actions_suggested=self.actions_suggested + outcome.suggested,
            errors=self.errors + outcome.errors,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "messagesProcessed": self.messages_processed,
            "actionsSuggested": self.actions_suggested,
            "errors": self.errors,
        }
