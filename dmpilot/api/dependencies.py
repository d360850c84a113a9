"""FastAPI dependencies that build the agent and assistant services.

The model gateway is created once per process. Tests replace it through
app.dependency_overrides[get_gateway].
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from dmpilot.agent.drafting import ReplyDrafter
from dmpilot.agent.orchestrator import AgentOrchestrator
from dmpilot.agent.retrieval import EmbeddingIndex
from dmpilot.assistant.dispatcher import AssistantDispatcher
from dmpilot.llm.gateway import GeminiGateway, ModelGateway


@lru_cache(maxsize=1)
def get_gateway() -> ModelGateway:
    return GeminiGateway()


def get_orchestrator(gateway: ModelGateway = Depends(get_gateway)) -> AgentOrchestrator:
    return AgentOrchestrator(gateway)


def get_dispatcher(gateway: ModelGateway = Depends(get_gateway)) -> AssistantDispatcher:
    return AssistantDispatcher(gateway)


def get_embedding_index(gateway: ModelGateway = Depends(get_gateway)) -> EmbeddingIndex:
    return EmbeddingIndex(gateway)


def get_drafter(
    gateway: ModelGateway = Depends(get_gateway),
    index: EmbeddingIndex = Depends(get_embedding_index),
) -> ReplyDrafter:
    return ReplyDrafter(gateway, index=index)
