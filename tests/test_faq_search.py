import math

import pytest

from api.utils.faq_search import (
    cosine_similarity,
    match_faq,
    parse_embedding,
    parse_selection,
    rank_faqs,
)


def faq(faq_id, embedding, intent=None):
    return {"id": faq_id, "intent": intent or f"intent {faq_id}", "answer": f"answer {faq_id}", "embedding": embedding}


@pytest.mark.parametrize(
    "a, b",
    [
        ([], [1.0]),
        ([1.0, 0.0], [1.0, 0.0, 0.0]),
        ([0.0, 0.0], [1.0, 1.0]),
        ([float("nan"), 1.0], [1.0, 1.0]),
    ],
)
def test_cosine_degenerate_inputs_score_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


def test_cosine_basic():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 1.0], [1.0, 0.0]) == pytest.approx(1 / math.sqrt(2))


def test_parse_embedding_formats():
    assert parse_embedding("[0.1, 0.2]") == [0.1, 0.2]
    assert parse_embedding(b"[1]") == [1]
    assert parse_embedding((1.0, 2.0)) == [1.0, 2.0]
    assert parse_embedding("not json") == []
    assert parse_embedding('{"a": 1}') == []
    assert parse_embedding(None) == []


def test_rank_faqs_orders_and_limits():
    faqs = [
        faq(1, "[0.0, 1.0]"),
        faq(2, "[1.0, 0.0]"),
        faq(3, "[0.7, 0.7]"),
        faq(4, None),
        faq(5, "[1.0, 0.0, 0.0]"),
    ]
    ranked = rank_faqs([1.0, 0.0], faqs, top_n=3)
    assert [f["id"] for f, _ in ranked] == [2, 3, 1]


def test_rank_faqs_is_stable_for_ties():
    faqs = [faq(1, "[1.0, 0.0]"), faq(2, "[2.0, 0.0]")]
    assert [f["id"] for f, _ in rank_faqs([1.0, 0.0], faqs)] == [1, 2]


@pytest.mark.parametrize(
    "raw, expected",
    [("2", 1), (" 1. wire poking", 0), ("NONE", None), ("none", None), ("7", None), ("0", None), ("maybe", None), (None, None)],
)
def test_parse_selection(raw, expected):
    assert parse_selection(raw, 3) == expected


@pytest.mark.asyncio
async def test_match_faq_llm_picks_candidate(completion, embedder):
    faqs = [faq(1, "[1.0, 0.0, 0.0]"), faq(2, "[0.9, 0.1, 0.0]")]
    completion.selection = "2"
    match = await match_faq("braces pain", faqs, embedder, completion)
    assert match.faq["id"] == 2
    assert len(match.candidates) == 2
    assert match.fallback is False
    assert embedder.calls == ["braces pain"]


@pytest.mark.asyncio
async def test_match_faq_llm_says_none(completion, embedder):
    completion.selection = "NONE"
    match = await match_faq("braces pain", [faq(1, "[1.0, 0.0, 0.0]")], embedder, completion)
    assert match.faq is None
    assert match.fallback is False


@pytest.mark.asyncio
async def test_match_faq_threshold_fallback_on_selection_error(completion, embedder):
    completion.fail.add("select")
    faqs = [faq(1, "[1.0, 0.0, 0.0]"), faq(2, "[0.0, 1.0, 0.0]")]
    match = await match_faq("braces pain", faqs, embedder, completion)
    assert match.faq["id"] == 1
    assert match.fallback is True


@pytest.mark.asyncio
async def test_match_faq_threshold_fallback_below_threshold(completion, embedder):
    completion.fail.add("select")
    match = await match_faq("braces pain", [faq(1, "[0.1, 1.0, 0.0]")], embedder, completion)
    assert match.faq is None
    assert match.fallback is True


@pytest.mark.asyncio
async def test_match_faq_embedding_error_returns_none(completion, embedder):
    embedder.fail = True
    faq_, candidates, used_fallback = await match_faq("braces pain", [faq(1, "[1.0, 0.0, 0.0]")], embedder, completion)
    assert faq_ is None
    assert candidates == []
    assert used_fallback is True


@pytest.mark.asyncio
async def test_match_faq_without_faqs_skips_embedding(completion, embedder):
    trace = []
    match = await match_faq("braces pain", [], embedder, completion, trace=trace.append)
    assert (match.faq, match.candidates, match.fallback) == (None, [], False)
    assert embedder.calls == []
    assert "[FAQ] No FAQs available" in trace
