"""Exception handlers that turn domain errors into sanitized JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dmpilot.errors import AgentError, RateLimitExceeded
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter
from dmpilot.utils.error_sanitizer import sanitize_error_message

logger = get_logger(__name__)


async def agent_error_handler(request: Request, exc: AgentError) -> JSONResponse:
    counter(f"api.errors.{exc.code}")
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)

    detail = sanitize_error_message(
        exc.message, exc.status_code, allow_passthrough=exc.status_code < 500
    )
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after_seconds)}

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail, "code": exc.code},
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report which fields were invalid without echoing validation internals."""
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AgentError, agent_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
