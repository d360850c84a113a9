"""Unit tests for the SQLite layer and the message store"""

from __future__ import annotations

import sqlite3

import pytest

from dmpilot.infrastructure import database
from dmpilot.infrastructure.database import (
    get_db_connection,
    init_database,
    reset_pool,
    retry_on_db_lock,
    validate_schema,
)
from dmpilot.messaging.repository import MessageRepository, UserRepository


def test_init_is_idempotent(db):
    init_database()
    init_database()

    assert validate_schema() is True


def test_missing_database_raises(tmp_path, monkeypatch):
    monkeypatch.setenv("DMPILOT_DB_PATH", str(tmp_path / "absent.db"))
    reset_pool()

    with pytest.raises(FileNotFoundError):
        with get_db_connection():
            pass


def test_retry_on_db_lock_retries_only_lock_errors(monkeypatch):
    monkeypatch.setattr(database.time, "sleep", lambda seconds: None)
    attempts = []

    @retry_on_db_lock(max_retries=3)
    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise sqlite3.OperationalError("database is locked")
        return "ok"

    @retry_on_db_lock(max_retries=3)
    def broken():
        raise sqlite3.OperationalError("no such table: faqs")

    assert flaky() == "ok"
    assert len(attempts) == 3
    with pytest.raises(sqlite3.OperationalError, match="no such table"):
        broken()


def test_annotations_are_write_once(creator, make_chat):
    _, (message,) = make_chat(creator, "fan-1", [("fan-1", "hi")])

    assert MessageRepository.annotate(message.id, "fan", "positive", 3) is True
    assert MessageRepository.annotate(message.id, "spam", "negative", 1) is False

    stored = MessageRepository.get_message(message.id)
    assert (stored.category, stored.sentiment, stored.collaboration_score) == ("fan", "positive", 3)
    assert stored.is_categorized


def test_chats_list_participants(creator, make_chat):
    chat, _ = make_chat(creator, "fan-1", name="Sam")

    (listed,) = MessageRepository.list_chats_for_user(creator)
    assert listed.id == chat.id
    assert sorted(listed.participant_ids) == sorted([creator, "fan-1"])
    assert MessageRepository.list_chats_for_user("stranger") == []


def test_agent_setting_defaults_to_off(db):
    assert UserRepository.is_agent_enabled("new-user") is False

    UserRepository.set_agent_enabled("new-user", True)
    assert UserRepository.is_agent_enabled("new-user") is True
    assert UserRepository.get_profile("new-user").display_name is None


def test_profile_upsert_keeps_agent_setting(creator):
    UserRepository.upsert_profile(creator, display_name="Maya B.")

    profile = UserRepository.get_profile(creator)
    assert profile.display_name == "Maya B."
    assert profile.agent_enabled is True


def test_profile_upsert_fails_loudly_when_row_vanishes(db, monkeypatch):
    monkeypatch.setattr(UserRepository, "get_profile", staticmethod(lambda user_id: None))

    with pytest.raises(RuntimeError, match="missing right after upsert"):
        UserRepository.upsert_profile("ghost", display_name="Nobody")


def test_uncategorized_incoming_messages(creator, make_chat):
    _, messages = make_chat(
        creator, "fan-1", [("fan-1", "first"), (creator, "mine"), ("fan-1", "second")]
    )
    MessageRepository.annotate(messages[0].id, "fan", "positive", 3)

    pending = MessageRepository.uncategorized_incoming_messages(creator, limit=10)

    assert [m.id for m in pending] == [messages[2].id]
