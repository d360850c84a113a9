"""
Shared pytest fixtures for DM Pilot tests.

- `db`: a fresh SQLite database per test (DMPILOT_DB_PATH points at tmp_path)
- `creator` and `make_chat`: seed users and chats
- telemetry counters are cleared before every test
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from dmpilot.infrastructure.database import init_database, reset_pool
from dmpilot.messaging.repository import MessageRepository, UserRepository
from dmpilot.observability import telemetry


@pytest.fixture(autouse=True)
def reset_telemetry():
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Point the pool at an empty schema-initialized database."""
    db_path = tmp_path / "dmpilot-test.db"
    monkeypatch.setenv("DMPILOT_DB_PATH", str(db_path))
    reset_pool()
    init_database()
    yield db_path
    reset_pool()


@pytest.fixture
def base_time():
    return datetime(2025, 10, 23, 14, 30, tzinfo=UTC)


@pytest.fixture
def creator(db):
    """An agent-enabled user with a profile."""
    UserRepository.upsert_profile("creator-1", display_name="Maya")
    UserRepository.set_agent_enabled("creator-1", True)
    return "creator-1"


@pytest.fixture
def make_chat(db):
    """Create a 1:1 chat between `user_id` and `other_id` with optional messages."""

    def _make_chat(
        user_id: str,
        other_id: str,
        messages: list[tuple[str, str | None]] | None = None,
        name: str | None = None,
        start: datetime | None = None,
        message_type: str = "text",
    ):
        chat = MessageRepository.create_chat([user_id, other_id], name=name)
        start = start or datetime.now(UTC) - timedelta(minutes=30)
        created = []
        for i, (sender, text) in enumerate(messages or []):
            created.append(
                MessageRepository.add_message(
                    chat.id,
                    sender,
                    text,
                    message_type=message_type,
                    timestamp=start + timedelta(seconds=i),
                )
            )
        return chat, created

    return _make_chat
