"""
Database schema initialization for DM Pilot.

Contains the SQL schema and validation logic, kept apart from database.py.
Timestamps are ISO-8601 UTC strings so lexical order is chronological order.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from dmpilot.observability.logging import get_logger

logger = get_logger(__name__)


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Safe to run multiple times - uses CREATE TABLE IF NOT EXISTS.

    Side Effects:
    - Creates the parent directory if needed
    - Creates tables and indexes if they don't exist
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                display_name TEXT,
                photo_url TEXT,
                agent_enabled INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS chats (
                id TEXT PRIMARY KEY,
                name TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS chat_participants (
                chat_id TEXT NOT NULL REFERENCES chats(id) ON DELETE CASCADE,
                user_id TEXT NOT NULL,
                PRIMARY KEY (chat_id, user_id)
            );

            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                chat_id TEXT NOT NULL REFERENCES chats(id) ON DELETE CASCADE,
                sender_id TEXT NOT NULL,
                text TEXT,
                type TEXT NOT NULL DEFAULT 'text',
                timestamp TEXT NOT NULL,
                ai_category TEXT,
                ai_sentiment TEXT,
                ai_collaboration_score INTEGER,
                ai_categorized_at TEXT
            );

            CREATE TABLE IF NOT EXISTS faqs (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                question TEXT NOT NULL,
                answer TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS suggested_actions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                type TEXT NOT NULL,
                message_id TEXT NOT NULL,
                chat_id TEXT NOT NULL,
                sender_id TEXT NOT NULL,
                sender_name TEXT,
                sender_photo_url TEXT,
                message_text TEXT,
                message_timestamp TEXT,
                suggested_text TEXT,
                reasoning TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(user_id, message_id)
            );

            CREATE TABLE IF NOT EXISTS agent_logs (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                action TEXT NOT NULL,
                message_id TEXT NOT NULL,
                chat_id TEXT NOT NULL,
                result TEXT NOT NULL,
                timestamp TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS ai_usage (
                user_id TEXT NOT NULL,
                window_key TEXT NOT NULL,
                call_count INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (user_id, window_key)
            );

            CREATE TABLE IF NOT EXISTS ai_chat_history (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                timestamp TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS message_embeddings (
                user_id TEXT NOT NULL,
                message_id TEXT NOT NULL,
                chat_id TEXT NOT NULL,
                embedding TEXT NOT NULL,
                text_snippet TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                PRIMARY KEY (user_id, message_id)
            );

            CREATE INDEX IF NOT EXISTS idx_participants_user ON chat_participants(user_id);
            CREATE INDEX IF NOT EXISTS idx_messages_chat_ts ON messages(chat_id, timestamp);
            CREATE INDEX IF NOT EXISTS idx_faqs_user ON faqs(user_id);
            CREATE INDEX IF NOT EXISTS idx_suggestions_user_status
                ON suggested_actions(user_id, status, created_at);
            CREATE INDEX IF NOT EXISTS idx_agent_logs_user_ts ON agent_logs(user_id, timestamp);
            CREATE INDEX IF NOT EXISTS idx_chat_history_user_ts ON ai_chat_history(user_id, timestamp);
            CREATE INDEX IF NOT EXISTS idx_embeddings_user_ts ON message_embeddings(user_id, timestamp);
        """)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema ready at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Validate database has expected schema

    Raises:
        ValueError: If tables or columns are missing
    """
    required_tables = {
        "users": ["id", "agent_enabled"],
        "chats": ["id", "name"],
        "chat_participants": ["chat_id", "user_id"],
        "messages": ["id", "chat_id", "sender_id", "text", "type", "timestamp", "ai_category"],
        "faqs": ["id", "user_id", "question", "answer"],
        "suggested_actions": ["id", "user_id", "message_id", "status", "updated_at"],
        "agent_logs": ["id", "user_id", "action", "result"],
        "ai_usage": ["user_id", "window_key", "call_count"],
        "ai_chat_history": ["id", "user_id", "role", "content"],
        "message_embeddings": ["user_id", "message_id", "embedding"],
    }

    existing_tables = {
        row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    }

    missing_tables = set(required_tables) - existing_tables
    if missing_tables:
        raise ValueError(f"Database missing tables: {missing_tables}")

    for table, required_cols in required_tables.items():
        # Identifiers cannot be parameterized; names come from the dict above
        existing_cols = {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}
        missing_cols = set(required_cols) - existing_cols
        if missing_cols:
            raise ValueError(f"Table '{table}' missing columns: {missing_cols}")

    return True
