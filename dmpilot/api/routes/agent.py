"""
Agent API Routes

Runs the triage agent and manages what it stages:
- POST /api/agent/run - triage the caller's DMs
- POST /api/agent/categorize/backfill - categorize older incoming messages
- GET/PUT /api/agent/settings - the agent on/off switch
- GET /api/agent/suggestions - suggested actions, newest first
- POST /api/agent/suggestions/{id}/approve|reject
- GET /api/agent/logs - audit trail of agent steps
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from dmpilot.agent.action_log import AgentActionLog
from dmpilot.agent.models import SuggestionStatus
from dmpilot.agent.orchestrator import AgentOrchestrator
from dmpilot.agent.suggestions import SuggestionRepository
from dmpilot.api.dependencies import get_orchestrator
from dmpilot.api.middleware.user_auth import AuthenticatedUser, get_current_user
from dmpilot.api.models import (
    AgentLogResponse,
    AgentSettingsBody,
    CategorizeBackfillResponse,
    RunAgentRequest,
    RunAgentResponse,
    SuggestionListResponse,
    SuggestionResponse,
    TransitionResponse,
)
from dmpilot.config import (
    API_LIST_LIMIT_DEFAULT,
    API_LIST_LIMIT_MAX,
    CATEGORIZE_BACKFILL_LIMIT,
)
from dmpilot.messaging.repository import UserRepository
from dmpilot.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/agent", tags=["agent"])


@router.post("/run", response_model=RunAgentResponse)
def run_agent(
    request: RunAgentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> RunAgentResponse:
    """
    Triage the latest incoming message of every chat the caller is in.

    Runs in the worker threadpool since it blocks on model calls.
    """
    summary = orchestrator.run_agent(user.id, request.user_id)
    return RunAgentResponse.from_summary(summary)


@router.post("/categorize/backfill", response_model=CategorizeBackfillResponse)
def backfill_categories(
    user: AuthenticatedUser = Depends(get_current_user),
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
    limit: int = Query(CATEGORIZE_BACKFILL_LIMIT, ge=1, le=API_LIST_LIMIT_MAX),
) -> CategorizeBackfillResponse:
    """Categorize the caller's incoming messages that the agent has not seen."""
    return CategorizeBackfillResponse(categorized=orchestrator.categorize_pending(user.id, limit))


@router.get("/settings", response_model=AgentSettingsBody)
async def get_settings(user: AuthenticatedUser = Depends(get_current_user)) -> AgentSettingsBody:
    return AgentSettingsBody(agent_enabled=UserRepository.is_agent_enabled(user.id))


@router.put("/settings", response_model=AgentSettingsBody)
async def update_settings(
    body: AgentSettingsBody,
    user: AuthenticatedUser = Depends(get_current_user),
) -> AgentSettingsBody:
    UserRepository.set_agent_enabled(user.id, body.agent_enabled)
    return AgentSettingsBody(agent_enabled=UserRepository.is_agent_enabled(user.id))


@router.get("/suggestions", response_model=SuggestionListResponse)
async def list_suggestions(
    user: AuthenticatedUser = Depends(get_current_user),
    status: SuggestionStatus | None = Query(None, description="pending, approved or rejected"),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
) -> SuggestionListResponse:
    suggestions = SuggestionRepository.list_for_user(user.id, status=status, limit=limit)
    return SuggestionListResponse(
        suggestions=[SuggestionResponse.from_suggestion(s) for s in suggestions],
        total=len(suggestions),
    )


@router.post("/suggestions/{action_id}/approve", response_model=TransitionResponse)
async def approve_suggestion(
    action_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> TransitionResponse:
    """Approve a pending suggestion. Sending the reply is up to the client."""
    if not SuggestionRepository.approve(user.id, action_id):
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return TransitionResponse(success=True, id=action_id, status=SuggestionStatus.APPROVED.value)


@router.post("/suggestions/{action_id}/reject", response_model=TransitionResponse)
async def reject_suggestion(
    action_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> TransitionResponse:
    if not SuggestionRepository.reject(user.id, action_id):
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return TransitionResponse(success=True, id=action_id, status=SuggestionStatus.REJECTED.value)


@router.get("/logs", response_model=list[AgentLogResponse])
async def list_logs(
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
) -> list[AgentLogResponse]:
    return [AgentLogResponse.from_entry(e) for e in AgentActionLog.list_recent(user.id, limit)]
