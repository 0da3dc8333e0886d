"""SQLDocumentStore against an in-memory SQLite database."""
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from conftest import run
from core.domain import Document, EmbeddingFailure, Passage, SimilarChunk
from core.interfaces import IVectorStore
from database.session import Base
from infrastructure.repositories import SQLDocumentStore


class RecordingVectorStore(IVectorStore):
    def __init__(self, matches):
        self.matches = matches
        self.searches = []

    async def add_chunks(self, document_id, passages):
        return True

    async def search(self, query_embedding, document_id, top_k=5):
        self.searches.append((document_id, top_k))
        return self.matches

    async def delete_by_document(self, document_id):
        return True


async def _with_store(test, vector_store=None):
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with session_factory() as session:
            return await test(SQLDocumentStore(session, vector_store))
    finally:
        await engine.dispose()


def _chunked(doc_id="doc-1", **overrides):
    fields = dict(
        id=doc_id,
        filename="contract.txt",
        raw_content="Payment is due. [preview]",
        is_chunked_externally=True,
        has_stored_embeddings=True,
        structured_facts={"parties": ["A", "B"]},
        chunks=[Passage(text="Payment is due. "), Passage(text="Either party may terminate.")],
        file_hash="abc123",
    )
    fields.update(overrides)
    return Document(**fields)


def test_save_and_get_round_trip():
    async def test(store):
        await store.save_document(_chunked())
        return await store.get_document("doc-1")

    doc = run(_with_store(test))

    assert doc.filename == "contract.txt"
    assert doc.is_chunked_externally and doc.has_stored_embeddings
    assert doc.structured_facts == {"parties": ["A", "B"]}
    assert [p.text for p in doc.chunks] == ["Payment is due. ", "Either party may terminate."]


def test_missing_document_is_none():
    async def test(store):
        return await store.get_document("missing"), await store.get_full_document_content("missing")

    assert run(_with_store(test)) == (None, None)


def test_full_content_joins_chunks_in_order():
    async def test(store):
        await store.save_document(_chunked())
        return await store.get_full_document_content("doc-1")

    assert run(_with_store(test)) == "Payment is due. Either party may terminate."


def test_full_content_of_unchunked_document_is_raw_content():
    async def test(store):
        await store.save_document(Document(id="doc-2", raw_content="Whole text."))
        return await store.get_full_document_content("doc-2")

    assert run(_with_store(test)) == "Whole text."


def test_update_extracted_content():
    async def test(store):
        await store.save_document(Document(id="doc-3", raw_content="%PDF-1.4 ..."))
        updated = await store.update_extracted_content("doc-3", "Extracted.")
        missing = await store.update_extracted_content("nope", "x")
        doc = await store.get_document("doc-3")
        full = await store.get_full_document_content("doc-3")
        return updated, missing, doc.extracted_text, full

    assert run(_with_store(test)) == (True, False, "Extracted.", "Extracted.")


def test_binary_bytes_are_stored_as_latin1_string():
    async def test(store):
        await store.save_document(Document(id="doc-4", raw_content=b"%PDF-1.4 \xe9\xff"))
        return (await store.get_document("doc-4")).raw_content

    assert run(_with_store(test)) == "%PDF-1.4 \xe9\xff"


def test_get_by_hash():
    async def test(store):
        await store.save_document(_chunked())
        return await store.get_by_hash("abc123"), await store.get_by_hash("other")

    found, missing = run(_with_store(test))

    assert found.id == "doc-1"
    assert missing is None


def test_saving_again_replaces_chunks():
    async def test(store):
        await store.save_document(_chunked())
        await store.save_document(_chunked(chunks=[Passage(text="Only chunk.")]))
        return await store.get_chunks("doc-1")

    assert [p.text for p in run(_with_store(test))] == ["Only chunk."]


def test_similarity_search_is_delegated_to_vector_store():
    match = SimilarChunk(chunk=Passage(text="Payment is due."), similarity=0.8)
    vector_store = RecordingVectorStore([match])

    async def test(store):
        return await store.find_similar_chunks([0.1, 0.2], "doc-1", top_k=3)

    assert run(_with_store(test, vector_store)) == [match]
    assert vector_store.searches == [("doc-1", 3)]


def test_similarity_search_without_vector_store_fails():
    async def test(store):
        return await store.find_similar_chunks([0.1], "doc-1")

    with pytest.raises(EmbeddingFailure):
        run(_with_store(test))
