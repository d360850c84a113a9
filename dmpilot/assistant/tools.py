"""
Read-only aggregations over the message store used by the assistant.

"Incoming" means sent to the user, i.e. by anyone other than the user.
High priority means a collaboration score strictly above 7.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from dmpilot.config import HIGH_PRIORITY_SCORE, SEARCH_MESSAGES_PER_CHAT
from dmpilot.messaging.models import MessageCategory, Sentiment
from dmpilot.messaging.repository import MessageRepository
from dmpilot.observability.logging import get_logger
from dmpilot.utils.timestamps import utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class SearchHit:
    message_id: str
    chat_id: str
    chat_name: str
    text: str
    sender_id: str
    timestamp: datetime
    category: str | None = None


@dataclass(frozen=True)
class MessageStats:
    total_messages: int
    category_counts: dict[str, int]
    sentiment_counts: dict[str, int]
    high_priority_count: int
    days: float


@dataclass(frozen=True)
class PriorityChat:
    chat_id: str
    chat_name: str
    last_message: str
    score: int
    category: str | None = None


@dataclass
class _Tally:
    categories: dict[str, int] = field(
        default_factory=lambda: {c.value: 0 for c in MessageCategory}
    )
    sentiments: dict[str, int] = field(default_factory=lambda: {s.value: 0 for s in Sentiment})
    total: int = 0
    high_priority: int = 0


def search_conversations(user_id: str, query: str, limit: int) -> list[SearchHit]:
    """
    Case-insensitive substring search over each chat's recent text messages.

    Only the newest SEARCH_MESSAGES_PER_CHAT text messages of each chat are
    scanned; at most `limit` hits are returned.
    """
    needle = query.lower()
    hits: list[SearchHit] = []

    for chat in MessageRepository.list_chats_for_user(user_id):
        if len(hits) >= limit:
            break
        for message in MessageRepository.recent_text_messages(chat.id, SEARCH_MESSAGES_PER_CHAT):
            if message.text and needle in message.text.lower():
                hits.append(
                    SearchHit(
                        message_id=message.id,
                        chat_id=chat.id,
                        chat_name=chat.display_name,
                        text=message.text,
                        sender_id=message.sender_id,
                        timestamp=message.timestamp,
                        category=message.category,
                    )
                )
                if len(hits) >= limit:
                    break

    logger.info("Search for user %s returned %d hits", user_id, len(hits))
    return hits


def get_message_stats(
    user_id: str,
    category: MessageCategory | str | None = None,
    days: float = 7,
    now: datetime | None = None,
) -> MessageStats:
    """Counts of incoming messages in the last `days` days, by category and sentiment."""
    since = (now or utc_now()) - timedelta(days=days)
    tally = _Tally()

    for message in MessageRepository.incoming_messages_since(user_id, since, category):
        tally.total += 1
        if message.category:
            tally.categories[message.category] = tally.categories.get(message.category, 0) + 1
        if message.sentiment:
            tally.sentiments[message.sentiment] = tally.sentiments.get(message.sentiment, 0) + 1
        if message.collaboration_score and message.collaboration_score > HIGH_PRIORITY_SCORE:
            tally.high_priority += 1

    return MessageStats(
        total_messages=tally.total,
        category_counts=tally.categories,
        sentiment_counts=tally.sentiments,
        high_priority_count=tally.high_priority,
        days=days,
    )


def list_high_priority_chats(user_id: str, limit: int) -> list[PriorityChat]:
    """Chats whose last message scored above 7, highest score first."""
    chats: list[PriorityChat] = []

    for chat in MessageRepository.list_chats_for_user(user_id):
        last = MessageRepository.last_message(chat.id)
        if last is None or not last.collaboration_score:
            continue
        if last.collaboration_score > HIGH_PRIORITY_SCORE:
            chats.append(
                PriorityChat(
                    chat_id=chat.id,
                    chat_name=chat.display_name,
                    last_message=last.text or "",
                    score=last.collaboration_score,
                    category=last.category,
                )
            )

    chats.sort(key=lambda c: c.score, reverse=True)
    return chats[:limit]
