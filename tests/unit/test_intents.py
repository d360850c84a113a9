"""Unit tests for assistant question parsing"""

from __future__ import annotations

import pytest

from dmpilot.assistant.intents import (
    Intent,
    describe_time_period,
    extract_category,
    extract_search_term,
    extract_time_period,
    matching_intents,
)


class TestMatchingIntents:
    def test_priority_order(self):
        assert matching_intents("find business stats") == [
            Intent.SEARCH,
            Intent.STATS,
            Intent.BUSINESS,
        ]

    def test_case_insensitive(self):
        assert matching_intents("SUMMARIZE my week") == [Intent.SUMMARIZE]

    def test_no_keywords(self):
        assert matching_intents("hello there") == []


class TestExtractSearchTerm:
    @pytest.mark.parametrize(
        "message,term",
        [
            ("search for 'merch drop'", "merch drop"),
            ('find "tour dates"', "tour dates"),
            ("show messages containing 'giveaway'", "giveaway"),
            ('anything about "sponsorship"?', "sponsorship"),
            ("search pizza party", "pizza party"),
            ("Find the collab email", "the collab email"),
        ],
    )
    def test_extracts_term(self, message, term):
        assert extract_search_term(message) == term

    def test_no_term(self):
        assert extract_search_term("search") is None
        assert extract_search_term("can you find ") is None


def test_extract_category():
    assert extract_category("how many business messages?") == "business"
    assert extract_category("spam count") == "spam"
    assert extract_category("how many messages?") is None


class TestTimePeriod:
    @pytest.mark.parametrize(
        "message,days",
        [
            ("stats for today", 1),
            ("what happened yesterday", 1),
            ("summarize this week", 7),
            ("stats this month", 30),
            ("last 3 hours", 3 / 24),
            ("last 90 minutes", 90 / 1440),
            ("last 14 days", 14),
            ("past 24 hours", 1),
            ("how many messages", 7),
        ],
    )
    def test_extract(self, message, days):
        assert extract_time_period(message) == pytest.approx(days)

    @pytest.mark.parametrize(
        "days,title,label",
        [
            (1, True, "Today"),
            (1, False, "today"),
            (7, True, "This Week"),
            (30, False, "this month"),
            (14, True, "Last 14 Days"),
            (14, False, "the last 14 days"),
            (3 / 24, True, "Last 3 Hours"),
            (1 / 24, True, "Last 1 Hour"),
            (90 / 1440, True, "Last 2 Hours"),
            (20 / 1440, True, "Last 20 Minutes"),
            (20 / 1440, False, "the last 20 minutes"),
        ],
    )
    def test_describe(self, days, title, label):
        assert describe_time_period(days, title=title) == label
