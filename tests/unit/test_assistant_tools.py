"""Unit tests for the assistant's read-only tools"""

from __future__ import annotations

from datetime import timedelta

from dmpilot.assistant.tools import get_message_stats, list_high_priority_chats, search_conversations
from dmpilot.messaging.repository import MessageRepository


def test_search_is_case_insensitive_and_limited(creator, make_chat):
    make_chat(creator, "fan-1", [("fan-1", "When is the MERCH drop?"), (creator, "merch soon!")])
    make_chat(creator, "fan-2", [("fan-2", "love the merch")], name="Superfan")

    hits = search_conversations(creator, "merch", limit=2)

    assert len(hits) == 2
    assert {hit.chat_name for hit in hits} == {"Direct Message"}

    all_hits = search_conversations(creator, "Merch", limit=5)
    assert len(all_hits) == 3
    assert "Superfan" in {hit.chat_name for hit in all_hits}


def test_search_ignores_other_users_chats(creator, make_chat):
    make_chat("other-creator", "fan-1", [("fan-1", "merch?")])

    assert search_conversations(creator, "merch", limit=5) == []


def test_stats_count_incoming_messages_in_window(creator, make_chat, base_time):
    _, messages = make_chat(
        creator,
        "fan-1",
        [("fan-1", "love you"), ("fan-1", "collab?"), (creator, "thanks!")],
        start=base_time - timedelta(hours=2),
    )
    MessageRepository.annotate(messages[0].id, "fan", "positive", 3)
    MessageRepository.annotate(messages[1].id, "business", "neutral", 9)
    _, (old,) = make_chat(creator, "fan-2", [("fan-2", "old")], start=base_time - timedelta(days=3))
    MessageRepository.annotate(old.id, "spam", "negative", 1)

    stats = get_message_stats(creator, days=1, now=base_time)

    assert stats.total_messages == 2
    assert stats.category_counts == {"fan": 1, "business": 1, "spam": 0, "urgent": 0}
    assert stats.sentiment_counts == {"positive": 1, "neutral": 1, "negative": 0}
    assert stats.high_priority_count == 1

    week = get_message_stats(creator, days=7, now=base_time)
    assert week.total_messages == 3

    business = get_message_stats(creator, category="business", days=7, now=base_time)
    assert business.total_messages == 1


def test_high_priority_chats_sorted_by_score(creator, make_chat):
    _, (a,) = make_chat(creator, "brand-a", [("brand-a", "sponsor?")], name="Brand A")
    _, (b,) = make_chat(creator, "brand-b", [("brand-b", "big collab")], name="Brand B")
    _, (c,) = make_chat(creator, "fan-1", [("fan-1", "hi")], name="Fan")
    MessageRepository.annotate(a.id, "business", "positive", 8)
    MessageRepository.annotate(b.id, "business", "positive", 10)
    MessageRepository.annotate(c.id, "fan", "positive", 7)

    chats = list_high_priority_chats(creator, limit=5)

    assert [(chat.chat_name, chat.score) for chat in chats] == [("Brand B", 10), ("Brand A", 8)]
    assert chats[0].category == "business"
    assert list_high_priority_chats(creator, limit=1)[0].chat_name == "Brand B"
