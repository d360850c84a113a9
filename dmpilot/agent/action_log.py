"""
Agent Action Log - append-only audit trail of what the agent did.

Writes are best-effort: an audit failure is logged and never breaks the
agent run that produced it.
"""

from __future__ import annotations

import uuid

from dmpilot.agent.models import AgentLogEntry, LogAction
from dmpilot.config import API_LIST_LIMIT_DEFAULT
from dmpilot.infrastructure.database import db_transaction, get_db_connection
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter
from dmpilot.utils.timestamps import to_db_timestamp, utc_now

logger = get_logger(__name__)


class AgentActionLog:
    @staticmethod
    def append(
        user_id: str,
        action: LogAction | str,
        message_id: str,
        chat_id: str,
        result: str,
    ) -> str:
        """
        Record one agent action.

        Returns:
            The new entry id, or "" if it could not be written
        """
        entry_id = str(uuid.uuid4())
        try:
            with db_transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO agent_logs (id, user_id, action, message_id, chat_id, result, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry_id,
                        user_id,
                        LogAction(action).value,
                        message_id,
                        chat_id,
                        result,
                        to_db_timestamp(utc_now()),
                    ),
                )
        except Exception as e:
            counter("dmpilot.action_log.write_failed")
            logger.error("Failed to log agent action %s for message %s: %s", action, message_id, e)
            return ""

        return entry_id

    @staticmethod
    def list_recent(user_id: str, limit: int = API_LIST_LIMIT_DEFAULT) -> list[AgentLogEntry]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM agent_logs WHERE user_id = ? ORDER BY timestamp DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return [AgentLogEntry.from_db_row(dict(row)) for row in rows]
