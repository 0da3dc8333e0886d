import pytest

from core.domain import Passage
from services.keyword_retriever import KeywordFallbackRetriever, extract_keywords


@pytest.fixture
def retriever():
    return KeywordFallbackRetriever(score_min=0.5, score_max=0.95, divisor=5.0)


def _passages(*texts):
    return [Passage(text=t) for t in texts]


def test_extract_keywords_drops_stop_words_short_tokens_and_punctuation():
    assert extract_keywords("What are the payment terms?") == ["what", "payment", "terms"]
    assert extract_keywords("Is it on a ship?") == ["ship"]
    assert extract_keywords("") == []


def test_empty_inputs_return_nothing(retriever):
    assert retriever.retrieve("payment terms", []) == []
    assert retriever.retrieve("   ", _passages("text")) == []


def test_no_keywords_returns_leading_passages_at_neutral_score(retriever):
    passages = _passages("one", "two", "three")

    results = retriever.retrieve("is it on?", passages, top_k=2)

    assert [r.text for r in results] == ["one", "two"]
    assert all(r.score == 0.5 for r in results)


def test_most_matching_passage_ranks_first(retriever):
    passages = _passages(
        "The delivery schedule is attached.",
        "Payment is due within 30 days. Late payment incurs interest.",
        "Nothing relevant here.",
    )

    results = retriever.retrieve("When is payment due?", passages)

    assert results[0].text.startswith("Payment is due")
    assert all(0.5 <= r.score <= 0.95 for r in results)


def test_matches_whole_words_only(retriever):
    passages = _passages("payments only", "one payment")

    results = retriever.retrieve("payment", passages)

    assert [r.text for r in results] == ["one payment", "payments only"]


def test_scores_are_clamped_to_upper_bound(retriever):
    passages = _passages("payment " * 30, "payment once")

    results = retriever.retrieve("payment", passages)

    assert results[0].score == 0.95
    assert results[1].score == 0.5


def test_top_k_limits_results(retriever):
    passages = _passages(*[f"risk number {i}" for i in range(10)])

    assert len(retriever.retrieve("risk", passages, top_k=3)) == 3
