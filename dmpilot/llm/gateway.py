"""Model gateway: one call surface for text completion and embeddings.

Callers depend on the ModelGateway protocol, never on the Vertex AI SDK.
GeminiGateway is the production implementation; tests pass a scripted fake.

Errors leaving a gateway are normalized:
    UpstreamRateLimited: provider throttled us (after retries)
    UpstreamError: anything else that went wrong talking to the provider
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dmpilot.config import LLM_MAX_RETRIES, LLM_TIMEOUT_SECONDS
from dmpilot.errors import DegenerateVector, DimensionMismatch, UpstreamError, UpstreamRateLimited
from dmpilot.infrastructure.settings import EMBEDDING_MODEL, GEMINI_MODEL
from dmpilot.llm.gemini import get_embedding_model, get_gemini_model
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter, time_block

logger = get_logger(__name__)


@dataclass(frozen=True)
class FunctionSchema:
    """A function the model may call instead of answering in text."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass(frozen=True)
class CompletionOptions:
    temperature: float
    max_tokens: int
    model: str | None = None
    function_schema: FunctionSchema | None = None
    json_output: bool = False


@dataclass(frozen=True)
class Completion:
    """Either free text or a structured function call."""

    kind: Literal["text", "function_call"]
    content: str = ""
    name: str | None = None
    arguments: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def text(cls, content: str) -> Completion:
        return cls(kind="text", content=content)

    @classmethod
    def function_call(cls, name: str, arguments: dict[str, Any]) -> Completion:
        return cls(kind="function_call", name=name, arguments=arguments)


class ModelGateway(Protocol):
    def complete(self, prompt: str, options: CompletionOptions) -> Completion: ...

    def embed(self, text: str) -> list[float]: ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine of the angle between two vectors, in [-1, 1].

    Raises:
        DimensionMismatch: If the vectors have different lengths
        DegenerateVector: If either vector has zero norm
    """
    if len(a) != len(b):
        raise DimensionMismatch(f"Vectors must have same length ({len(a)} != {len(b)})")

    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        raise DegenerateVector("Cannot compare a zero-norm vector")

    dot = sum(x * y for x, y in zip(a, b, strict=True))
    # Clamp float drift so identical vectors don't land at 1.0000000002
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def _plain(value: Any) -> Any:
    """Convert proto-backed function-call args into plain Python values."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict) or hasattr(value, "items"):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, list | tuple) or (
        hasattr(value, "__iter__") and not isinstance(value, str | bytes)
    ):
        return [_plain(v) for v in value]
    return value


class _Throttled(OSError):
    """Provider quota exhaustion (429), kept apart from ordinary OSErrors."""


def _convert_vertex_error(e: Exception, operation: str) -> Exception:
    """Map Vertex AI exceptions onto the builtins the retry policy understands."""
    from google.api_core.exceptions import (
        DeadlineExceeded,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    if isinstance(e, DeadlineExceeded):
        counter(f"llm.{operation}.timeout")
        logger.warning("LLM %s timed out after %ds", operation, LLM_TIMEOUT_SECONDS)
        return TimeoutError(f"LLM call timed out: {e}")
    if isinstance(e, ServiceUnavailable | InternalServerError):
        counter(f"llm.{operation}.service_unavailable")
        logger.warning("LLM service error, will retry: %s", e)
        return ConnectionError(f"LLM service unavailable: {e}")
    if isinstance(e, ResourceExhausted):
        counter(f"llm.{operation}.rate_limited")
        logger.warning("LLM rate limited (429), will retry: %s", e)
        return _Throttled(f"LLM rate limited: {e}")
    return e


_transient_retry = retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError, _Throttled)),
    reraise=True,
)


class GeminiGateway:
    """ModelGateway backed by Gemini (completion) and Vertex text embeddings."""

    def __init__(self, model_name: str = GEMINI_MODEL, embedding_model: str = EMBEDDING_MODEL):
        self.model_name = model_name
        self.embedding_model = embedding_model

    def complete(self, prompt: str, options: CompletionOptions) -> Completion:
        """
        Run one completion.

        Raises:
            UpstreamRateLimited: Provider kept throttling through every retry
            UpstreamError: Any other provider or transport failure
        """
        with time_block("llm.complete"):
            return self._normalized(self._complete_with_retry, "complete", prompt, options)

    def embed(self, text: str) -> list[float]:
        with time_block("llm.embed"):
            return self._normalized(self._embed_with_retry, "embed", text)

    def _normalized(self, call, operation: str, *args):
        try:
            result = call(*args)
        except _Throttled as e:
            counter(f"llm.{operation}.failed")
            raise UpstreamRateLimited(f"Model provider rate limited: {e}") from e
        except (TimeoutError, ConnectionError) as e:
            counter(f"llm.{operation}.failed")
            raise UpstreamError(f"Model provider unavailable: {e}") from e
        except UpstreamError:
            counter(f"llm.{operation}.failed")
            raise
        except Exception as e:
            counter(f"llm.{operation}.failed")
            logger.error("LLM %s failed: %s", operation, e)
            raise UpstreamError(f"Model call failed: {e}") from e

        counter(f"llm.{operation}.success")
        return result

    @_transient_retry
    def _complete_with_retry(self, prompt: str, options: CompletionOptions) -> Completion:
        model = get_gemini_model(options.model or self.model_name)

        generation_config: dict[str, Any] = {
            "temperature": options.temperature,
            "max_output_tokens": options.max_tokens,
        }
        if options.json_output and options.function_schema is None:
            generation_config["response_mime_type"] = "application/json"

        kwargs: dict[str, Any] = {"generation_config": generation_config}
        if options.function_schema is not None:
            from vertexai.generative_models import FunctionDeclaration, Tool

            declaration = FunctionDeclaration(
                name=options.function_schema.name,
                description=options.function_schema.description,
                parameters=options.function_schema.parameters,
            )
            kwargs["tools"] = [Tool(function_declarations=[declaration])]

        try:
            response = model.generate_content(prompt, **kwargs)
        except Exception as e:
            raise _convert_vertex_error(e, "complete") from e

        if not response.candidates:
            raise UpstreamError("Model returned no candidates")

        candidate = response.candidates[0]
        function_calls = getattr(candidate, "function_calls", None) or []
        if function_calls:
            call = function_calls[0]
            return Completion.function_call(call.name, _plain(call.args))

        try:
            return Completion.text(response.text)
        except ValueError as e:
            # Raised by the SDK when the candidate was blocked or has no text part
            raise UpstreamError(f"Model returned no text: {e}") from e

    @_transient_retry
    def _embed_with_retry(self, text: str) -> list[float]:
        model = get_embedding_model(self.embedding_model)
        try:
            embeddings = model.get_embeddings([text])
        except Exception as e:
            raise _convert_vertex_error(e, "embed") from e

        if not embeddings:
            raise UpstreamError("Embedding model returned no vectors")
        return list(embeddings[0].values)
