"""
Decision policy: which suggestion, if any, a triaged message gets.

Rules are checked in order and the first hit wins:

    1. FAQ match              -> respond with the FAQ answer
    2. spam                   -> archive
    3. urgent                 -> flag
    4. business               -> flag
    5. collaboration score >7 -> flag
    6. fan                    -> respond with a drafted friendly reply
    7. anything else          -> no action

decide() does no I/O itself. The friendly reply is produced by the
`draft_reply` callable, which is only invoked when rule 6 fires.
"""

from __future__ import annotations

from collections.abc import Callable

from dmpilot.agent.models import ActionType, Directive, FAQMatch
from dmpilot.config import HIGH_PRIORITY_SCORE
from dmpilot.messaging.models import MessageCategory


def decide(
    faq_match: FAQMatch | None,
    category: MessageCategory | str | None,
    sentiment: str | None,
    score: int | None,
    *,
    draft_reply: Callable[[], str],
) -> Directive | None:
    """Map a triaged message to a Directive (or None for no action)."""
    del sentiment  # no rule reads it yet

    if faq_match is not None:
        return Directive(
            action=ActionType.RESPOND,
            suggested_text=faq_match.answer,
            reasoning=f'Matched FAQ: "{faq_match.question}"',
            log_result=f"Suggested FAQ answer: {faq_match.question}",
        )

    if category == MessageCategory.SPAM:
        return Directive(
            action=ActionType.ARCHIVE,
            reasoning="Message appears to be spam",
            log_result="Suggested archiving spam message",
        )

    flag_reason = None
    if category == MessageCategory.URGENT:
        flag_reason = "Urgent message requiring immediate attention"
    elif category == MessageCategory.BUSINESS:
        flag_reason = "Business opportunity detected"
    elif score is not None and score > HIGH_PRIORITY_SCORE:
        flag_reason = f"High collaboration potential (score: {score})"

    if flag_reason is not None:
        return Directive(
            action=ActionType.FLAG,
            reasoning=flag_reason,
            log_result=f"Flagged: {flag_reason}",
        )

    if category == MessageCategory.FAN:
        return Directive(
            action=ActionType.RESPOND,
            suggested_text=draft_reply(),
            reasoning="Auto-drafted friendly response to fan message",
            log_result="Suggested friendly response to fan",
        )

    return None
