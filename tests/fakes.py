"""Test doubles shared across the suite."""

from __future__ import annotations

from collections.abc import Callable

from dmpilot.llm.gateway import Completion, CompletionOptions


class FakeGateway:
    """
    Records every call and answers from a script.

    `responder` is either a list of Completions/exceptions consumed in order,
    or a callable (prompt, options) -> Completion. Embeddings come from the
    `vectors` dict keyed by text, else `default_vector`.
    """

    def __init__(
        self,
        responder: list | Callable[[str, CompletionOptions], Completion] | None = None,
        vectors: dict[str, list[float]] | None = None,
        default_vector: list[float] | None = None,
        embed_error: Exception | None = None,
    ):
        self.responder = responder if responder is not None else []
        self.vectors = vectors or {}
        self.default_vector = default_vector or [1.0, 0.0, 0.0]
        self.embed_error = embed_error
        self.calls: list[tuple[str, CompletionOptions]] = []
        self.embedded: list[str] = []

    def complete(self, prompt: str, options: CompletionOptions) -> Completion:
        self.calls.append((prompt, options))
        if callable(self.responder):
            result = self.responder(prompt, options)
        elif self.responder:
            result = self.responder.pop(0)
        else:
            result = Completion.text("")

        if isinstance(result, Exception):
            raise result
        return result

    def embed(self, text: str) -> list[float]:
        self.embedded.append(text)
        if self.embed_error is not None:
            raise self.embed_error
        return self.vectors.get(text, self.default_vector)

