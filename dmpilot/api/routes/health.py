"""Health check and debug endpoints for the DM Pilot API.

- /health - Service health including LLM credential presence
- /health/db - Database connection pool health
- /debug/stats - Aggregate counts and in-process counters (no PII)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from dmpilot.config import APP_VERSION
from dmpilot.infrastructure.database import get_db_connection, get_pool_stats
from dmpilot.llm.gemini import has_credentials
from dmpilot.observability.telemetry import get_latency_stats, snapshot_counters

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status and Vertex AI credential readiness (no API call is made)."""
    return {
        "status": "healthy",
        "service": "DM Pilot API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {"ready": has_credentials()},
    }


@router.get("/health/db")
async def database_health() -> dict[str, Any]:
    """Pool health; degraded above 80% usage."""
    stats = get_pool_stats()
    usage_percent = stats["usage_percent"]

    return {
        "status": "degraded" if usage_percent > 80 else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if usage_percent > 80 else None,
    }


@router.get("/debug/stats")
async def debug_stats() -> dict[str, Any]:
    with get_db_connection() as conn:
        cursor = conn.execute(
            "SELECT status, COUNT(*) AS count FROM suggested_actions GROUP BY status"
        )
        suggestions_by_status = {row["status"]: row["count"] for row in cursor.fetchall()}

        cursor = conn.execute("SELECT COUNT(*) FROM agent_logs")
        total_log_entries = cursor.fetchone()[0]

    return {
        "suggestions": {
            "total": sum(suggestions_by_status.values()),
            "by_status": suggestions_by_status,
        },
        "agent_log_entries": total_log_entries,
        "counters": snapshot_counters(),
        "latency": {
            name: get_latency_stats(name)
            for name in ("dmpilot.agent.run", "llm.complete", "llm.embed")
        },
        "database": get_pool_stats(),
        "timestamp": datetime.now(UTC).isoformat(),
    }
