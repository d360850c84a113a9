"""
Error message sanitization utility.

Prevents information leakage by sanitizing error messages before returning
them to clients.
"""

from __future__ import annotations

import re

from dmpilot.observability.logging import get_logger

logger = get_logger(__name__)

# Patterns that might leak sensitive information
SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.py",
    r"[A-Za-z]:\\[^\s]+",
    # Stack trace indicators
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    r"line \d+",
    # Database errors
    r"sqlite3?\.",
    r"UNIQUE constraint",
    r"no such table",
    r"no such column",
    # API keys / secrets patterns
    r"[A-Za-z0-9_-]{20,}",
    r"Bearer [A-Za-z0-9._-]+",
    # Internal module names
    r"dmpilot\.[a-z_.]+",
]

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Authentication required.",
    403: "Access denied.",
    404: "Resource not found.",
    409: "Request conflicts with the current state.",
    412: "Precondition failed.",
    422: "Invalid data format.",
    429: "Too many requests. Please try again later.",
    500: "An internal error occurred. Please try again later.",
    502: "AI service temporarily unavailable. Please try again later.",
    503: "Service temporarily unavailable.",
}


def sanitize_error_message(
    message: str,
    status_code: int = 500,
    allow_passthrough: bool = False,
) -> str:
    """
    Sanitize an error message to prevent information leakage.

    Args:
        message: The original error message
        status_code: HTTP status code (selects the generic fallback)
        allow_passthrough: Return short, clean messages unchanged. Used for
            domain errors whose text was written for the end user.

    Returns:
        Message safe for client consumption
    """
    generic = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message:
        return generic

    for pattern in SENSITIVE_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            logger.warning("Sanitized sensitive error pattern: %s", pattern)
            return generic

    if (allow_passthrough or status_code == 400) and len(message) < 200 and "\n" not in message:
        return message

    return generic
