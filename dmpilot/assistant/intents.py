"""
Keyword parsing for assistant questions.

Pure functions: no storage or model access. The dispatcher uses them to pick
a branch and to fill in the search term, category filter and time window.
"""

from __future__ import annotations

import math
import re
from enum import Enum

from dmpilot.config import DEFAULT_TIME_PERIOD_DAYS
from dmpilot.messaging.models import MessageCategory


class Intent(str, Enum):
    SEARCH = "search"
    SUMMARIZE = "summarize"
    STATS = "stats"
    PRIORITY = "priority"
    BUSINESS = "business"
    GENERAL = "general"


# Checked in this order; the first intent whose keyword appears wins
INTENT_KEYWORDS: tuple[tuple[Intent, tuple[str, ...]], ...] = (
    (Intent.SEARCH, ("search", "find")),
    (Intent.SUMMARIZE, ("summarize", "summary")),
    (Intent.STATS, ("stats", "how many", "count")),
    (Intent.PRIORITY, ("urgent", "important", "priority")),
    (Intent.BUSINESS, ("business", "collab", "partnership")),
)

_SEARCH_PATTERNS = (
    re.compile(r"search for [\"'](.+?)[\"']", re.IGNORECASE),
    re.compile(r"find [\"'](.+?)[\"']", re.IGNORECASE),
    re.compile(r"containing [\"'](.+?)[\"']", re.IGNORECASE),
    re.compile(r"about [\"'](.+?)[\"']", re.IGNORECASE),
)

_LAST_N_HOURS = re.compile(r"last\s+(\d+)\s+hour")
_LAST_N_MINUTES = re.compile(r"last\s+(\d+)\s+minute")
_LAST_N_DAYS = re.compile(r"last\s+(\d+)\s+day")


def matching_intents(message: str) -> list[Intent]:
    """Every keyword intent present in the message, in priority order."""
    lower = message.lower()
    return [
        intent for intent, keywords in INTENT_KEYWORDS if any(k in lower for k in keywords)
    ]


def extract_search_term(message: str) -> str | None:
    """
    Pull the search term out of a question.

    Quoted forms win ("search for 'x'", find "x", containing 'x', about "x");
    otherwise everything after the first "search " or "find ".
    """
    for pattern in _SEARCH_PATTERNS:
        match = pattern.search(message)
        if match and match.group(1):
            return match.group(1)

    for keyword in ("search ", "find "):
        if keyword in message.lower():
            rest = re.split(keyword, message, maxsplit=1, flags=re.IGNORECASE)[1].strip()
            if rest:
                return rest

    return None


def extract_category(message: str) -> MessageCategory | None:
    lower = message.lower()
    for category in (
        MessageCategory.FAN,
        MessageCategory.BUSINESS,
        MessageCategory.SPAM,
        MessageCategory.URGENT,
    ):
        if category.value in lower:
            return category
    return None


def extract_time_period(message: str) -> float:
    """Time window in days; fractional for hour and minute windows."""
    lower = message.lower()

    if "today" in lower or "yesterday" in lower:
        return 1
    if "week" in lower:
        return 7
    if "month" in lower:
        return 30
    if match := _LAST_N_HOURS.search(lower):
        return int(match.group(1)) / 24
    if match := _LAST_N_MINUTES.search(lower):
        return int(match.group(1)) / (24 * 60)
    if match := _LAST_N_DAYS.search(lower):
        return int(match.group(1))
    if "24 hours" in lower or "24h" in lower:
        return 1

    return DEFAULT_TIME_PERIOD_DAYS


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _format_days(days: float) -> str:
    return str(int(days)) if float(days).is_integer() else f"{days:g}"


def describe_time_period(days: float, title: bool = False) -> str:
    """
    Human label for a time window.

    describe_time_period(1) -> "today"; with title=True -> "Today".
    Sub-day windows are shown in whole hours, or in minutes when under an hour.
    """
    if days == 1:
        return "Today" if title else "today"
    if days == 7:
        return "This Week" if title else "this week"
    if days == 30:
        return "This Month" if title else "this month"

    if days < 1:
        hours = _round_half_up(days * 24)
        if hours >= 1:
            amount, unit = hours, "Hour"
        else:
            amount, unit = _round_half_up(days * 24 * 60), "Minute"
        plural = "s" if amount > 1 else ""
        label = f"Last {amount} {unit}{plural}"
    else:
        label = f"Last {_format_days(days)} Days"

    return label if title else "the " + label.lower()
