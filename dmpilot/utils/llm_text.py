"""Helpers for text going into and coming out of LLM prompts."""

from __future__ import annotations

import json
import re
from typing import Any

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def sanitize_prompt_text(text: str | None, max_length: int = 500) -> str:
    """Neutralize prompt-injection phrasing and cap length of user-supplied text."""
    if not text:
        return ""

    text = re.sub(r"(?i)(ignore|disregard).*(instruction|prompt)", "[REDACTED]", text)
    text = re.sub(r"(?i)system\s*:", "", text)
    text = re.sub(r"(?i)assistant\s*:", "", text)
    return text[:max_length]


def first_json_object(text: str) -> str | None:
    """
    Return the first balanced {...} substring of `text`, or None.

    Braces inside JSON string literals don't count toward the balance.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        start = text.find("{", start + 1)
    return None


def parse_json_object(text: str | None) -> dict[str, Any] | None:
    """
    Parse the first JSON object found in a model reply.

    Handles markdown code fences and prose around the object. Returns None
    when nothing parses to a dict.
    """
    if not text:
        return None

    candidate = first_json_object(_CODE_FENCE.sub("", text.strip()))
    if candidate is None:
        return None

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None

    return data if isinstance(data, dict) else None
