"""
Domain errors raised by the agent, the assistant and their stores.

Each error carries the HTTP status the API layer answers with, so routes can
let them propagate and a single exception handler renders them.
"""

from __future__ import annotations


class AgentError(Exception):
    """Base class for errors that are safe to show to the caller."""

    status_code: int = 500
    code: str = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(AgentError):
    status_code = 401
    code = "unauthenticated"


class PermissionDeniedError(AgentError):
    status_code = 403
    code = "permission-denied"


class InvalidArgumentError(AgentError):
    status_code = 400
    code = "invalid-argument"


class FailedPreconditionError(AgentError):
    status_code = 412
    code = "failed-precondition"


class NotFoundError(AgentError):
    status_code = 404
    code = "not-found"


class SuggestionConflictError(AgentError):
    """Approve or reject on a suggestion that is no longer pending."""

    status_code = 409
    code = "conflict"


class RateLimitExceeded(AgentError):
    status_code = 429
    code = "resource-exhausted"

    def __init__(self, message: str, retry_after_seconds: int):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class UpstreamError(AgentError):
    """The model provider failed (transport, auth or bad response)."""

    status_code = 502
    code = "upstream"


class UpstreamRateLimited(UpstreamError):
    """The model provider throttled the request."""

    code = "upstream-rate-limited"


class DimensionMismatch(ValueError):
    """Vectors compared with cosine similarity have different lengths."""


class DegenerateVector(ValueError):
    """A vector with zero norm was passed to cosine similarity."""
