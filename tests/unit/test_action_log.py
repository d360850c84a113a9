"""Unit tests for the agent audit log"""

from __future__ import annotations

import sqlite3

from dmpilot.agent import action_log
from dmpilot.agent.action_log import AgentActionLog
from dmpilot.agent.models import LogAction
from dmpilot.observability.telemetry import get_counter


def test_append_and_list(db):
    entry_id = AgentActionLog.append("u1", LogAction.FLAG, "m1", "c1", "Flagged: urgent")

    (entry,) = AgentActionLog.list_recent("u1")
    assert entry.id == entry_id
    assert entry.action == "flag"
    assert entry.result == "Flagged: urgent"
    assert AgentActionLog.list_recent("u2") == []


def test_write_failure_is_swallowed(db, monkeypatch):
    def broken_transaction():
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(action_log, "db_transaction", broken_transaction)

    assert AgentActionLog.append("u1", "respond", "m1", "c1", "Suggested reply") == ""
    assert get_counter("dmpilot.action_log.write_failed") == 1
