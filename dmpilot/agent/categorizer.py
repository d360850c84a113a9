"""
Message Categorizer - LLM classification of incoming DMs.

Assigns each message a category (fan/business/spam/urgent), a sentiment and a
1-10 collaboration score. The model is offered a `classify_message` function
so it can answer with structured arguments; a plain-text JSON answer is
accepted too. Anything unusable collapses to Categorization.default().
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from dmpilot.agent.models import Categorization
from dmpilot.config import CATEGORIZE_MAX_TOKENS, CATEGORIZE_TEMPERATURE
from dmpilot.errors import UpstreamError
from dmpilot.llm.gateway import Completion, CompletionOptions, FunctionSchema, ModelGateway
from dmpilot.llm.prompts import render_prompt
from dmpilot.messaging.models import MessageCategory, Sentiment
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter, log_event
from dmpilot.utils.llm_text import parse_json_object, sanitize_prompt_text

logger = get_logger(__name__)


CLASSIFY_FUNCTION = FunctionSchema(
    name="classify_message",
    description="Record the category, sentiment and collaboration potential of a DM.",
    parameters={
        "type": "object",
        "properties": {
            "category": {"type": "string", "enum": [c.value for c in MessageCategory]},
            "sentiment": {"type": "string", "enum": [s.value for s in Sentiment]},
            "collaborationScore": {"type": "integer", "description": "1 (none) to 10 (very high)"},
        },
        "required": ["category", "sentiment", "collaborationScore"],
    },
)


class CategorizationSchema(BaseModel):
    """Schema for LLM response validation."""

    category: Literal["fan", "business", "spam", "urgent"]
    sentiment: Literal["positive", "neutral", "negative"]
    collaboration_score: int = Field(alias="collaborationScore", ge=1, le=10)


class MessageCategorizer:
    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    def categorize(self, text: str) -> Categorization:
        """
        Classify one message.

        Never raises: gateway failures and unparseable answers both return
        the default categorization (fan / neutral / 1).

        Side Effects:
            - One gateway completion call
            - Increments dmpilot.categorizer.* counters
        """
        try:
            return self.classify(text)
        except UpstreamError as e:
            logger.warning("Categorization call failed, using default: %s", e)
            return Categorization.default()

    def classify(self, text: str) -> Categorization:
        """
        Like categorize(), but a gateway failure propagates as UpstreamError.

        An answer that arrives but can't be used still yields the default.
        """
        prompt = render_prompt("categorize", message=sanitize_prompt_text(text, max_length=2000))
        options = CompletionOptions(
            temperature=CATEGORIZE_TEMPERATURE,
            max_tokens=CATEGORIZE_MAX_TOKENS,
            function_schema=CLASSIFY_FUNCTION,
        )

        try:
            completion = self.gateway.complete(prompt, options)
        except UpstreamError:
            counter("dmpilot.categorizer.upstream_error")
            raise

        result = self._parse_completion(completion)
        if result is None:
            counter("dmpilot.categorizer.fallback")
            return Categorization.default()

        counter("dmpilot.categorizer.success")
        log_event(
            "dmpilot.categorizer.result",
            category=result.category.value,
            sentiment=result.sentiment.value,
            score=result.collaboration_score,
        )
        return result

    def _parse_completion(self, completion: Completion) -> Categorization | None:
        data: dict[str, Any] | None
        if completion.kind == "function_call":
            data = completion.arguments
        else:
            data = parse_json_object(completion.content)

        if data is None:
            logger.warning("Categorization reply had no JSON object")
            return None

        try:
            validated = CategorizationSchema.model_validate(data)
        except ValidationError as e:
            logger.warning("Categorization reply failed validation: %s", e.error_count())
            return None

        return Categorization(
            category=MessageCategory(validated.category),
            sentiment=Sentiment(validated.sentiment),
            collaboration_score=validated.collaboration_score,
        )
