"""Unit tests for the model gateway; the Vertex AI model is replaced by fakes"""

from __future__ import annotations

import math
import socket
import time
from types import SimpleNamespace

import pytest
from google.api_core.exceptions import ResourceExhausted, ServiceUnavailable

from dmpilot.config import LLM_MAX_RETRIES
from dmpilot.errors import (
    DegenerateVector,
    DimensionMismatch,
    UpstreamError,
    UpstreamRateLimited,
)
from dmpilot.llm import gateway as gateway_module
from dmpilot.llm import gemini
from dmpilot.llm.gateway import (
    Completion,
    CompletionOptions,
    GeminiGateway,
    _plain,
    cosine_similarity,
)
from dmpilot.observability.telemetry import get_counter


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([0.1, 0.2, 0.3], [0.1, 0.2, 0.3]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_result_is_clamped(self):
        v = [1e-3, 3e-3, 7e-3]
        assert -1.0 <= cosine_similarity(v, v) <= 1.0

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [1.0, 1.0]) == pytest.approx(1 / math.sqrt(2))

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_zero_vector(self):
        with pytest.raises(DegenerateVector):
            cosine_similarity([0.0, 0.0], [1.0, 1.0])


def test_plain_converts_nested_args():
    args = {"collaborationScore": 7.0, "tags": ("a", "b"), "nested": {"ratio": 0.5}}

    assert _plain(args) == {"collaborationScore": 7, "tags": ["a", "b"], "nested": {"ratio": 0.5}}


def test_completion_factories():
    assert Completion.text("hi").kind == "text"
    call = Completion.function_call("classify_message", {"category": "fan"})
    assert call.kind == "function_call"
    assert call.content == ""
    assert call.arguments == {"category": "fan"}


class _FakeResponse:
    def __init__(self, text: str):
        self.text = text
        self.candidates = [SimpleNamespace(function_calls=[])]


class _ScriptedModel:
    """Stands in for a GenerativeModel; raises or answers in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def generate_content(self, prompt, **kwargs):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return _FakeResponse(outcome)


class TestGeminiGatewayErrors:
    OPTIONS = CompletionOptions(temperature=0.3, max_tokens=100)

    @pytest.fixture(autouse=True)
    def no_backoff(self, monkeypatch):
        monkeypatch.setattr(time, "sleep", lambda seconds: None)

    def _gateway(self, monkeypatch, model):
        monkeypatch.setattr(gateway_module, "get_gemini_model", lambda name: model)
        return GeminiGateway(model_name="gemini-test")

    def test_success_returns_text(self, monkeypatch):
        model = _ScriptedModel("hello")

        result = self._gateway(monkeypatch, model).complete("hi", self.OPTIONS)

        assert result == Completion.text("hello")
        assert get_counter("llm.complete.success") == 1

    def test_provider_throttling_is_retried_then_rate_limited(self, monkeypatch):
        model = _ScriptedModel(ResourceExhausted("quota exceeded"))

        with pytest.raises(UpstreamRateLimited):
            self._gateway(monkeypatch, model).complete("hi", self.OPTIONS)

        assert model.calls == LLM_MAX_RETRIES

    def test_transient_unavailability_recovers(self, monkeypatch):
        model = _ScriptedModel(ServiceUnavailable("try again"), "recovered")

        result = self._gateway(monkeypatch, model).complete("hi", self.OPTIONS)

        assert result.content == "recovered"
        assert model.calls == 2

    def test_persistent_unavailability_is_upstream_error(self, monkeypatch):
        model = _ScriptedModel(ServiceUnavailable("down"))

        with pytest.raises(UpstreamError) as exc_info:
            self._gateway(monkeypatch, model).complete("hi", self.OPTIONS)

        assert not isinstance(exc_info.value, UpstreamRateLimited)
        assert model.calls == LLM_MAX_RETRIES

    @pytest.mark.parametrize(
        "error",
        [
            socket.gaierror(-2, "Name or service not known"),
            PermissionError("creds file unreadable"),
            FileNotFoundError("service account key missing"),
        ],
    )
    def test_os_errors_are_not_treated_as_throttling(self, monkeypatch, error):
        model = _ScriptedModel(error)

        with pytest.raises(UpstreamError) as exc_info:
            self._gateway(monkeypatch, model).complete("hi", self.OPTIONS)

        assert not isinstance(exc_info.value, UpstreamRateLimited)
        assert model.calls == 1
        assert get_counter("llm.complete.failed") == 1

    def test_blocked_candidate_is_upstream_error(self, monkeypatch):
        class Blocked:
            candidates = [SimpleNamespace(function_calls=[])]

            @property
            def text(self):
                raise ValueError("response was blocked")

        model = SimpleNamespace(generate_content=lambda prompt, **kwargs: Blocked())

        with pytest.raises(UpstreamError, match="no text"):
            self._gateway(monkeypatch, model).complete("hi", self.OPTIONS)


def test_missing_project_fails_model_init(monkeypatch):
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    monkeypatch.setattr(gemini, "GOOGLE_CLOUD_PROJECT", "")
    gemini.clear_model_cache()
    try:
        with pytest.raises(gemini.GeminiInitializationError):
            gemini.get_gemini_model("gemini-test")
        assert gemini.has_credentials() is False
    finally:
        gemini.clear_model_cache()
