"""FastAPI server for the DM Pilot agent"""

from __future__ import annotations

import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dmpilot.api.errors import register_exception_handlers
from dmpilot.api.routes.agent import router as agent_router
from dmpilot.api.routes.assistant import router as assistant_router
from dmpilot.api.routes.faqs import router as faqs_router
from dmpilot.api.routes.health import router as health_router
from dmpilot.config import ALLOWED_ORIGINS, API_HOST, API_PORT, APP_VERSION
from dmpilot.infrastructure.database import init_database
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import log_event

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="DM Pilot API", version=APP_VERSION)

logger = get_logger(__name__)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)

try:
    logger.info("Initializing database schema...")
    init_database()
    logger.info("Database initialization complete")
except sqlite3.OperationalError as e:
    logger.critical("Database schema error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e
except Exception as e:
    logger.critical("Unexpected database initialization error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e

app.include_router(health_router)
app.include_router(agent_router)
app.include_router(assistant_router)
app.include_router(faqs_router)

log_event("api.startup", service="dmpilot-api", version=APP_VERSION)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "DM Pilot API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "agent_run": "/api/agent/run",
            "suggestions": "/api/agent/suggestions",
            "agent_logs": "/api/agent/logs",
            "assistant": "/api/assistant/messages",
            "drafts": "/api/assistant/drafts",
            "faqs": "/api/faqs",
            "debug_stats": "/debug/stats",
        },
    }


def main() -> None:
    import uvicorn

    uvicorn.run("dmpilot.api.app:app", host=API_HOST, port=API_PORT)
