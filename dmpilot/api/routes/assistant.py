"""
Assistant API Routes

Natural-language questions about the caller's DMs, plus reply drafting.
Every endpoint that spends a model call counts against the hourly quota.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from dmpilot.agent.drafting import ReplyDrafter
from dmpilot.agent.retrieval import EmbeddingIndex
from dmpilot.api.dependencies import get_dispatcher, get_drafter, get_embedding_index
from dmpilot.api.middleware.user_auth import AuthenticatedUser, get_current_user
from dmpilot.api.models import (
    BackfillResponse,
    DraftRequest,
    DraftResponse,
    SendMessageRequest,
    SendMessageResponse,
    TranscriptEntryResponse,
    UsageResponse,
)
from dmpilot.assistant.dispatcher import AssistantDispatcher
from dmpilot.assistant.transcript import TranscriptRepository
from dmpilot.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX, RETRIEVAL_CANDIDATE_LIMIT
from dmpilot.infrastructure.rate_limiter import get_usage
from dmpilot.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/assistant", tags=["assistant"])


@router.post("/messages", response_model=SendMessageResponse)
def send_message(
    request: SendMessageRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    dispatcher: AssistantDispatcher = Depends(get_dispatcher),
) -> SendMessageResponse:
    result = dispatcher.send_message(user.id, request.user_id, request.message)
    return SendMessageResponse(response=result["response"])


@router.get("/history", response_model=list[TranscriptEntryResponse])
async def get_history(
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
) -> list[TranscriptEntryResponse]:
    """Latest transcript entries, oldest first."""
    entries = TranscriptRepository.list_recent(user.id, limit)
    return [TranscriptEntryResponse.from_entry(e) for e in entries]


@router.get("/usage", response_model=UsageResponse)
async def get_ai_usage(user: AuthenticatedUser = Depends(get_current_user)) -> UsageResponse:
    return UsageResponse(**get_usage(user.id).to_dict())


@router.post("/drafts", response_model=DraftResponse)
def draft_replies(
    request: DraftRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    drafter: ReplyDrafter = Depends(get_drafter),
) -> DraftResponse:
    """Three reply options in the caller's voice."""
    options = drafter.reply_options(user.id, request.chat_id, request.message_text)
    return DraftResponse(drafts=options.drafts, context=options.context)


@router.post("/embeddings/backfill", response_model=BackfillResponse)
def backfill_embeddings(
    user: AuthenticatedUser = Depends(get_current_user),
    index: EmbeddingIndex = Depends(get_embedding_index),
    limit: int = Query(RETRIEVAL_CANDIDATE_LIMIT, ge=1, le=API_LIST_LIMIT_MAX),
) -> BackfillResponse:
    """Embed the caller's sent messages that are not indexed yet."""
    return BackfillResponse(indexed=index.backfill(user.id, limit))
