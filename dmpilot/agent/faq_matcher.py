"""FAQ Matcher - asks the model whether a DM is one of the user's FAQs."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from dmpilot.agent.models import FAQMatch
from dmpilot.config import FAQ_MATCH_MAX_TOKENS, FAQ_MATCH_TEMPERATURE
from dmpilot.errors import UpstreamError
from dmpilot.llm.gateway import CompletionOptions, ModelGateway
from dmpilot.llm.prompts import render_prompt
from dmpilot.messaging.models import FAQ
from dmpilot.messaging.repository import FAQRepository
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter
from dmpilot.utils.llm_text import parse_json_object, sanitize_prompt_text

logger = get_logger(__name__)


def format_faq_list(faqs: list[FAQ]) -> str:
    return "\n".join(
        f'{i}. Q: "{sanitize_prompt_text(faq.question)}" | A: "{sanitize_prompt_text(faq.answer)}"'
        for i, faq in enumerate(faqs, start=1)
    )


def _faq_number(value: object, faq_count: int) -> int | None:
    """The 1-based FAQ number in `value`, or None if it isn't one in range."""
    # bool is an int subclass; `true` is not a FAQ number
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and 1 <= value <= faq_count:
        return value
    return None


class FAQMatcher:
    def __init__(
        self,
        gateway: ModelGateway,
        faq_source: Callable[[str], list[FAQ]] = FAQRepository.list_for_user,
    ):
        self.gateway = gateway
        self.faq_source = faq_source

    def match(self, user_id: str, text: str) -> FAQMatch | None:
        """
        Return the FAQ the message asks, or None.

        A user with no FAQs gets None without a model call. Malformed,
        out-of-range or negative answers, and gateway or storage failures,
        are all "no match".
        """
        try:
            faqs = self.faq_source(user_id)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Could not load FAQs for user %s: %s", user_id, e)
            return None

        if not faqs:
            counter("dmpilot.faq_matcher.no_faqs")
            return None

        prompt = render_prompt(
            "faq_match",
            message=sanitize_prompt_text(text, max_length=2000),
            faq_list=format_faq_list(faqs),
            faq_count=len(faqs),
        )
        options = CompletionOptions(
            temperature=FAQ_MATCH_TEMPERATURE,
            max_tokens=FAQ_MATCH_MAX_TOKENS,
            json_output=True,
        )

        try:
            completion = self.gateway.complete(prompt, options)
        except UpstreamError as e:
            counter("dmpilot.faq_matcher.upstream_error")
            logger.warning("FAQ matching failed: %s", e)
            return None

        data = (
            completion.arguments
            if completion.kind == "function_call"
            else parse_json_object(completion.content)
        )
        if not data or data.get("matched") is not True:
            counter("dmpilot.faq_matcher.no_match")
            return None

        faq_number = data.get("faqNumber")
        number = _faq_number(faq_number, len(faqs))
        if number is None:
            counter("dmpilot.faq_matcher.invalid_number")
            logger.warning("FAQ matcher returned invalid faqNumber=%r (faqs=%d)", faq_number, len(faqs))
            return None

        faq = faqs[number - 1]
        counter("dmpilot.faq_matcher.matched")
        return FAQMatch(faq_id=faq.id, question=faq.question, answer=faq.answer)
