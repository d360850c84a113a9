"""Unit tests for ReplyDrafter"""

from __future__ import annotations

import json

import pytest

from dmpilot.agent.drafting import FALLBACK_DRAFTS, FRIENDLY_REPLY_FALLBACK, ReplyDrafter
from dmpilot.agent.retrieval import EmbeddingIndex
from dmpilot.errors import InvalidArgumentError, RateLimitExceeded, UpstreamError
from dmpilot.llm.gateway import Completion
from tests.fakes import FakeGateway

DRAFTS = {"draft1": "Aw thank you!! 💕", "draft2": "Thank you for your kind words.", "draft3": "Thanks!"}


def no_limit(user_id):
    return 1


class TestFriendlyReply:
    def test_model_reply_is_trimmed(self):
        gateway = FakeGateway([Completion.text("  So glad you enjoyed it!  ")])

        assert ReplyDrafter(gateway).friendly_reply("loved it") == "So glad you enjoyed it!"

    def test_empty_reply_uses_fallback(self):
        assert ReplyDrafter(FakeGateway([Completion.text("   ")])).friendly_reply("hi") == (
            FRIENDLY_REPLY_FALLBACK
        )

    def test_upstream_failure_uses_fallback(self):
        gateway = FakeGateway([UpstreamError("down")])

        assert ReplyDrafter(gateway).friendly_reply("hi") == FRIENDLY_REPLY_FALLBACK


class TestReplyOptions:
    def test_three_drafts_in_users_voice(self, creator, make_chat):
        make_chat(creator, "fan-1", [(creator, "omg you're amazing, thank youuu")])
        gateway = FakeGateway([Completion.text(json.dumps(DRAFTS))])
        index = EmbeddingIndex(gateway)
        index.backfill(creator)

        options = ReplyDrafter(gateway, index=index, rate_limit=no_limit).reply_options(
            creator, "chat-1", "your last video made my day"
        )

        assert options.drafts == ["Aw thank you!! 💕", "Thank you for your kind words.", "Thanks!"]
        assert options.context == ["omg you're amazing, thank youuu"]
        assert options.fallback is False
        prompt, call_options = gateway.calls[0]
        assert "Maya" in prompt
        assert "EXAMPLES OF MAYA'S PAST MESSAGES" in prompt
        assert "omg you're amazing, thank youuu" in prompt
        assert call_options.json_output is True

    def test_unknown_user_is_called_user(self, db):
        gateway = FakeGateway([Completion.text(json.dumps(DRAFTS))])

        ReplyDrafter(gateway, rate_limit=no_limit).reply_options("u-new", "chat-1", "hi")

        prompt, _ = gateway.calls[0]
        assert "You are helping User, a content creator" in prompt
        assert "PAST MESSAGES" not in prompt

    def test_unparseable_reply_returns_fallback_drafts(self, creator):
        gateway = FakeGateway([Completion.text('{"draft1": "only one"}')])

        options = ReplyDrafter(gateway, rate_limit=no_limit).reply_options(creator, "c1", "hey")

        assert options.drafts == list(FALLBACK_DRAFTS)
        assert options.fallback is True

    def test_upstream_failure_propagates(self, creator):
        gateway = FakeGateway([UpstreamError("down")])

        with pytest.raises(UpstreamError):
            ReplyDrafter(gateway, rate_limit=no_limit).reply_options(creator, "c1", "hey")

    @pytest.mark.parametrize("chat_id,text", [("", "hey"), ("c1", ""), ("c1", "   ")])
    def test_blank_input_is_rejected_before_rate_limit(self, db, chat_id, text):
        charged = []
        drafter = ReplyDrafter(FakeGateway(), rate_limit=charged.append)

        with pytest.raises(InvalidArgumentError):
            drafter.reply_options("u1", chat_id, text)

        assert charged == []

    def test_rate_limit_blocks_model_call(self, creator):
        def exhausted(user_id):
            raise RateLimitExceeded("limit", retry_after_seconds=60)

        gateway = FakeGateway()

        with pytest.raises(RateLimitExceeded):
            ReplyDrafter(gateway, rate_limit=exhausted).reply_options(creator, "c1", "hey")

        assert gateway.calls == []
