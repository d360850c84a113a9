"""Unit tests for the embedding index used for voice-matched drafts"""

from __future__ import annotations

import json

from dmpilot.agent.retrieval import EmbeddingIndex
from dmpilot.errors import UpstreamError
from dmpilot.infrastructure.database import db_transaction
from tests.fakes import FakeGateway

VECTORS = {
    "omg thank you so much!!": [1.0, 0.0, 0.0],
    "let's talk rates over email": [0.0, 1.0, 0.0],
    "haha love this": [0.9, 0.1, 0.0],
    "thanks for watching": [1.0, 0.05, 0.0],
}


def _seed(creator, make_chat):
    _, messages = make_chat(
        creator,
        "fan-1",
        [
            (creator, "omg thank you so much!!"),
            (creator, "let's talk rates over email"),
            (creator, "haha love this"),
            ("fan-1", "you're the best"),
        ],
    )
    return messages


def test_backfill_indexes_only_own_unindexed_messages(creator, make_chat):
    _seed(creator, make_chat)
    index = EmbeddingIndex(FakeGateway(vectors=VECTORS))

    assert index.backfill(creator) == 3
    assert index.backfill(creator) == 0


def test_backfill_stops_at_first_upstream_error(creator, make_chat):
    _seed(creator, make_chat)
    gateway = FakeGateway(embed_error=UpstreamError("quota"))

    assert EmbeddingIndex(gateway).backfill(creator) == 0
    assert len(gateway.embedded) == 1


def test_retrieve_ranks_by_similarity(creator, make_chat):
    _seed(creator, make_chat)
    index = EmbeddingIndex(FakeGateway(vectors=VECTORS))
    index.backfill(creator)

    results = index.retrieve(creator, "thanks for watching", limit=2)

    assert [r.text for r in results] == ["omg thank you so much!!", "haha love this"]
    assert results[0].similarity >= results[1].similarity


def test_retrieve_skips_corrupt_vectors(creator, make_chat):
    messages = _seed(creator, make_chat)
    index = EmbeddingIndex(FakeGateway(vectors=VECTORS))
    index.backfill(creator)
    with db_transaction() as conn:
        conn.execute(
            "UPDATE message_embeddings SET embedding = ? WHERE message_id = ?",
            (json.dumps([1.0, 0.0]), messages[0].id),
        )

    results = index.retrieve(creator, "thanks for watching")

    assert messages[0].id not in [r.message_id for r in results]
    assert len(results) == 2


def test_retrieve_returns_empty_when_query_cannot_be_embedded(creator, make_chat):
    _seed(creator, make_chat)
    EmbeddingIndex(FakeGateway(vectors=VECTORS)).backfill(creator)

    failing = EmbeddingIndex(FakeGateway(embed_error=UpstreamError("down")))

    assert failing.retrieve(creator, "anything") == []


def test_non_text_messages_are_not_indexed(creator, make_chat):
    _, (image,) = make_chat(creator, "fan-1", [(creator, None)], message_type="image")
    gateway = FakeGateway()

    assert EmbeddingIndex(gateway).index_message(image) is False
    assert gateway.embedded == []
