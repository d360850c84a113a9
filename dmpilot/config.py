"""Centralized configuration for DM Pilot.

Re-exports dmpilot.infrastructure.settings, then adds typed constants for the
database, LLM calls, quotas, the agent run and the assistant. Environment
variable overrides use safe defaults so the app starts without extra env
configuration.
"""

from __future__ import annotations

import os

from dmpilot.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("DMPILOT_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("DMPILOT_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("DMPILOT_DB_CONNECT_TIMEOUT", "30.0"))
DB_TEMP_CONN_MAX: int = int(os.getenv("DMPILOT_DB_TEMP_CONN_MAX", "10"))
DB_RETRY_MAX: int = int(os.getenv("DMPILOT_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("DMPILOT_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("DMPILOT_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("DMPILOT_DB_RETRY_JITTER", "0.1"))

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(os.getenv("DMPILOT_LLM_TIMEOUT", "30"))
LLM_MAX_RETRIES: int = int(os.getenv("DMPILOT_LLM_MAX_RETRIES", "3"))

CATEGORIZE_TEMPERATURE: float = 0.3
CATEGORIZE_MAX_TOKENS: int = 150
CATEGORIZE_BACKFILL_LIMIT: int = 50
FAQ_MATCH_TEMPERATURE: float = 0.2
FAQ_MATCH_MAX_TOKENS: int = 100
FRIENDLY_REPLY_TEMPERATURE: float = 0.7
FRIENDLY_REPLY_MAX_TOKENS: int = 100
DRAFT_OPTIONS_TEMPERATURE: float = 0.8
DRAFT_OPTIONS_MAX_TOKENS: int = 300
ASSISTANT_TEMPERATURE: float = 0.7
ASSISTANT_MAX_TOKENS: int = 300

# --- Rate Limiting ---
AI_CALLS_PER_HOUR: int = int(os.getenv("DMPILOT_AI_CALLS_PER_HOUR", "100"))

# --- Agent ---
AGENT_MAX_WORKERS: int = int(os.getenv("DMPILOT_AGENT_MAX_WORKERS", "4"))
HIGH_PRIORITY_SCORE: int = 7  # strictly greater than this is high priority

# --- Assistant ---
SEARCH_RESULT_LIMIT: int = 5
SEARCH_MESSAGES_PER_CHAT: int = 20
PRIORITY_CHAT_LIMIT: int = 5
BUSINESS_TOP_CHATS: int = 3
DEFAULT_TIME_PERIOD_DAYS: float = 7

# --- Retrieval ---
RETRIEVAL_CANDIDATE_LIMIT: int = 100
RETRIEVAL_CONTEXT_LIMIT: int = 5
EMBEDDING_SNIPPET_CHARS: int = 100

# --- API ---
API_LIST_LIMIT_DEFAULT: int = 50
API_LIST_LIMIT_MAX: int = 200
