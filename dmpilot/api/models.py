"""Request and response models for the HTTP API. JSON fields are camelCase."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dmpilot.agent.models import AgentLogEntry, RunSummary, SuggestedAction
from dmpilot.assistant.transcript import TranscriptEntry
from dmpilot.messaging.models import FAQ


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunAgentRequest(ApiModel):
    user_id: str | None = None


class RunAgentResponse(ApiModel):
    messages_processed: int
    actions_suggested: int
    errors: int

    @classmethod
    def from_summary(cls, summary: RunSummary) -> RunAgentResponse:
        return cls(
            messages_processed=summary.messages_processed,
            actions_suggested=summary.actions_suggested,
            errors=summary.errors,
        )


class CategorizeBackfillResponse(ApiModel):
    categorized: int


class AgentSettingsBody(ApiModel):
    agent_enabled: bool


class SuggestionResponse(ApiModel):
    id: str
    type: str
    message_id: str
    chat_id: str
    sender_id: str
    sender_name: str | None
    sender_photo_url: str | None
    message_text: str | None
    message_timestamp: str | None
    suggested_text: str | None
    reasoning: str
    status: str
    created_at: str
    updated_at: str

    @classmethod
    def from_suggestion(cls, s: SuggestedAction) -> SuggestionResponse:
        return cls(
            id=s.id,
            type=s.type,
            message_id=s.message_id,
            chat_id=s.chat_id,
            sender_id=s.sender_id,
            sender_name=s.sender_name,
            sender_photo_url=s.sender_photo_url,
            message_text=s.message_text,
            message_timestamp=s.message_timestamp.isoformat() if s.message_timestamp else None,
            suggested_text=s.suggested_text,
            reasoning=s.reasoning,
            status=s.status,
            created_at=s.created_at.isoformat(),
            updated_at=s.updated_at.isoformat(),
        )


class SuggestionListResponse(ApiModel):
    suggestions: list[SuggestionResponse]
    total: int


class TransitionResponse(ApiModel):
    success: bool
    id: str
    status: str


class AgentLogResponse(ApiModel):
    id: str
    action: str
    message_id: str
    chat_id: str
    result: str
    timestamp: str

    @classmethod
    def from_entry(cls, entry: AgentLogEntry) -> AgentLogResponse:
        return cls(
            id=entry.id,
            action=entry.action,
            message_id=entry.message_id,
            chat_id=entry.chat_id,
            result=entry.result,
            timestamp=entry.timestamp.isoformat(),
        )


class SendMessageRequest(ApiModel):
    user_id: str | None = None
    message: str | None = Field(default=None, max_length=2000)


class SendMessageResponse(ApiModel):
    response: str


class TranscriptEntryResponse(ApiModel):
    id: str
    role: str
    content: str
    timestamp: str

    @classmethod
    def from_entry(cls, entry: TranscriptEntry) -> TranscriptEntryResponse:
        return cls(
            id=entry.id,
            role=entry.role,
            content=entry.content,
            timestamp=entry.timestamp.isoformat(),
        )


class UsageResponse(ApiModel):
    hour: str
    total_calls: int
    limit: int
    remaining: int
    minutes_until_reset: int


class DraftRequest(ApiModel):
    chat_id: str = Field(..., min_length=1)
    message_text: str = Field(..., min_length=1, max_length=2000)


class DraftResponse(ApiModel):
    success: bool = True
    drafts: list[str]
    context: list[str]


class BackfillResponse(ApiModel):
    indexed: int


class FAQBody(ApiModel):
    question: str = Field(..., min_length=1, max_length=500)
    answer: str = Field(..., min_length=1, max_length=2000)


class FAQResponse(ApiModel):
    id: str
    question: str
    answer: str
    created_at: str

    @classmethod
    def from_faq(cls, faq: FAQ) -> FAQResponse:
        return cls(
            id=faq.id,
            question=faq.question,
            answer=faq.answer,
            created_at=faq.created_at.isoformat(),
        )
