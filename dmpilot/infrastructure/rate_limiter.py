"""
Per-user hourly quota for AI calls.

Every feature that spends a model call (assistant questions, reply drafts)
shares one counter per user per UTC hour. The check and the increment are a
single UPSERT, so concurrent requests can never push a user past the cap.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from dmpilot.config import AI_CALLS_PER_HOUR
from dmpilot.errors import RateLimitExceeded
from dmpilot.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter

logger = get_logger(__name__)


@dataclass(frozen=True)
class UsageStats:
    """Quota usage for the current window."""

    hour: str
    total_calls: int
    limit: int
    remaining: int
    minutes_until_reset: int

    def to_dict(self) -> dict:
        return asdict(self)


def window_key(now: datetime) -> str:
    """Hour bucket key, e.g. "2025-10-23-14" for 14:xx UTC."""
    return now.astimezone(UTC).strftime("%Y-%m-%d-%H")


def minutes_until_reset(now: datetime) -> int:
    return 60 - now.astimezone(UTC).minute


def _limit_message(limit: int, minutes: int) -> str:
    plural = "s" if minutes != 1 else ""
    return (
        f"You've reached the hourly limit ({limit} AI calls per hour). "
        f"Try again in {minutes} minute{plural}."
    )


@retry_on_db_lock()
def check_and_increment(
    user_id: str,
    limit: int = AI_CALLS_PER_HOUR,
    now: datetime | None = None,
) -> int:
    """
    Count one AI call against the user's hourly quota.

    Returns:
        The user's call count in the current window after this call

    Raises:
        RateLimitExceeded: If the window already holds `limit` calls. The
            counter is left unchanged.
    """
    now = now or datetime.now(UTC)
    key = window_key(now)

    with db_transaction() as conn:
        cursor = conn.execute(
            """
            INSERT INTO ai_usage (user_id, window_key, call_count, updated_at)
            VALUES (?, ?, 1, ?)
            ON CONFLICT(user_id, window_key) DO UPDATE SET
                call_count = ai_usage.call_count + 1,
                updated_at = excluded.updated_at
            WHERE ai_usage.call_count < ?
            """,
            (user_id, key, now.isoformat(), limit),
        )
        allowed = cursor.rowcount == 1

        # Earlier windows are never read again
        conn.execute(
            "DELETE FROM ai_usage WHERE user_id = ? AND window_key < ?",
            (user_id, key),
        )

        row = conn.execute(
            "SELECT call_count FROM ai_usage WHERE user_id = ? AND window_key = ?",
            (user_id, key),
        ).fetchone()

    calls = row["call_count"] if row else 0

    if not allowed:
        minutes = minutes_until_reset(now)
        counter("rate_limit.exceeded")
        logger.warning(
            "Rate limit exceeded: user=%s hour=%s calls=%d limit=%d", user_id, key, calls, limit
        )
        raise RateLimitExceeded(_limit_message(limit, minutes), retry_after_seconds=minutes * 60)

    counter("rate_limit.allowed")
    logger.debug("Rate limit: call allowed user=%s hour=%s calls=%d/%d", user_id, key, calls, limit)
    return calls


def get_usage(
    user_id: str,
    limit: int = AI_CALLS_PER_HOUR,
    now: datetime | None = None,
) -> UsageStats:
    """Current-window usage; a user with no calls this hour shows a fresh quota."""
    now = now or datetime.now(UTC)
    key = window_key(now)

    with get_db_connection() as conn:
        row = conn.execute(
            "SELECT call_count FROM ai_usage WHERE user_id = ? AND window_key = ?",
            (user_id, key),
        ).fetchone()

    total = row["call_count"] if row else 0
    return UsageStats(
        hour=key,
        total_calls=total,
        limit=limit,
        remaining=max(0, limit - total),
        minutes_until_reset=minutes_until_reset(now),
    )
