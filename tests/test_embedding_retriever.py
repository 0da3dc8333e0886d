import pytest

from conftest import FakeEmbeddingService, InMemoryDocumentStore, run
from core.domain import Document, EmbeddingFailure, Passage, SimilarChunk
from services import embedding_retriever as retriever_module
from services.embedding_retriever import EmbeddingRetriever

PASSAGES = [
    Passage(text="The delivery date is March 1."),
    Passage(text="Payment is due on delivery. Late payment is charged."),
    Passage(text="Each party bears its own risk."),
]


@pytest.fixture
def store():
    doc = Document(
        id="doc-1",
        filename="contract.txt",
        is_chunked_externally=True,
        has_stored_embeddings=True,
        chunks=[Passage(text="Termination requires notice."), Passage(text="Payment terms: net 30.")],
    )
    return InMemoryDocumentStore([doc])


def _retriever(embedding_service, store=None, **kwargs):
    kwargs.setdefault("batch_delay_ms", 0)
    return EmbeddingRetriever(embedding_service, store, **kwargs)


# ---------------------------------------------------------------------------
# FRESH EMBEDDINGS
# ---------------------------------------------------------------------------

def test_embed_passages_batches_requests(embedding_service):
    passages = [Passage(text=f"chunk {i}") for i in range(45)]

    embedded = run(_retriever(embedding_service, batch_size=20).embed_passages(passages))

    assert [len(batch) for batch in embedding_service.batch_calls] == [20, 20, 5]
    assert len(embedded) == 45
    assert all(p.embedding is not None for p in embedded)
    assert [p.text for p in embedded] == [p.text for p in passages]


def test_embed_passages_pauses_between_batches(embedding_service, monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(retriever_module.asyncio, "sleep", fake_sleep)
    passages = [Passage(text=f"chunk {i}") for i in range(45)]

    run(_retriever(embedding_service, batch_size=20, batch_delay_ms=200).embed_passages(passages))

    assert delays == [0.2, 0.2]


def test_rank_orders_by_similarity(embedding_service):
    result = run(_retriever(embedding_service).rank("What about payment?", PASSAGES, top_k=2))

    assert result.ok
    assert len(result.value) == 2
    assert result.value[0].text.startswith("Payment is due")


def test_rank_failure_is_a_result(embedding_service):
    result = run(_retriever(FakeEmbeddingService(fail=True)).rank("payment?", PASSAGES))

    assert not result.ok
    assert isinstance(result.error, EmbeddingFailure)


def test_retrieve_degrades_to_unscored_passages():
    results = run(_retriever(FakeEmbeddingService(fail=True)).retrieve("payment?", PASSAGES, top_k=2))

    assert [r.text for r in results] == [p.text for p in PASSAGES[:2]]
    assert all(r.score == 1.0 for r in results)


def test_retrieve_without_passages_is_empty(embedding_service):
    assert run(_retriever(embedding_service).retrieve("payment?", [])) == []


# ---------------------------------------------------------------------------
# STORED EMBEDDINGS
# ---------------------------------------------------------------------------

def test_search_stored_returns_sorted_matches(embedding_service, store):
    store.similar["doc-1"] = [
        SimilarChunk(chunk=Passage(text="lower"), similarity=0.61),
        SimilarChunk(chunk=Passage(text="higher"), similarity=0.92),
    ]

    result = run(_retriever(embedding_service, store).search_stored("payment?", "doc-1"))

    assert result.ok
    assert [(r.text, r.score) for r in result.value] == [("higher", 0.92), ("lower", 0.61)]


def test_search_stored_with_no_matches_fails(embedding_service, store):
    result = run(_retriever(embedding_service, store).search_stored("payment?", "doc-1"))

    assert not result.ok


def test_stored_failure_falls_back_to_keyword_over_stored_chunks(embedding_service, store):
    store.similar_error = RuntimeError("vector index offline")

    results = run(
        _retriever(embedding_service, store).retrieve_from_stored_embeddings("payment terms?", "doc-1")
    )

    assert results[0].text == "Payment terms: net 30."
    assert all(0.5 <= r.score <= 0.95 for r in results)


def test_stored_fallback_without_chunks_returns_nothing(embedding_service):
    store = InMemoryDocumentStore([Document(id="bare")])
    store.similar_error = RuntimeError("vector index offline")

    assert run(_retriever(embedding_service, store).retrieve_from_stored_embeddings("q?", "bare")) == []
