"""
Shared fakes for the QA pipeline ports.

Every external collaborator (document store, vector store, embedding and
generation providers, binary extractors) has an in-memory stand-in here so
tests never touch a model, a network API or a database file.
"""
import asyncio
from typing import Callable, Dict, List, Optional, Union

import pytest

from core.domain import (
    ContentKind,
    Document,
    EmbeddingFailure,
    GenerationFailure,
    Passage,
    SimilarChunk,
)
from core.interfaces import (
    IBinaryExtractor,
    IDocumentStore,
    IEmbeddingService,
    ILLMService,
    IVectorStore,
)
from infrastructure.inline_cache import InlineDocumentCache
from services.content import TextExtractor


def run(coro):
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# EMBEDDINGS
# ---------------------------------------------------------------------------

VOCAB = ["payment", "termination", "party", "risk", "date", "delivery"]


def bag_of_words(text: str) -> List[float]:
    """Deterministic embedding: occurrences of each vocabulary word."""
    lowered = text.lower()
    return [float(lowered.count(word)) for word in VOCAB]


class FakeEmbeddingService(IEmbeddingService):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.batch_calls: List[List[str]] = []
        self.query_calls: List[str] = []

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        if self.fail:
            raise EmbeddingFailure("embedding provider unavailable")
        return [bag_of_words(t) for t in texts]

    async def generate_query_embedding(self, query: str) -> List[float]:
        self.query_calls.append(query)
        if self.fail:
            raise EmbeddingFailure("embedding provider unavailable")
        return bag_of_words(query)


# ---------------------------------------------------------------------------
# GENERATION
# ---------------------------------------------------------------------------

class FakeLLM(ILLMService):
    """
    Returns queued replies in order (the last one repeats). A reply that is an
    exception instance is raised instead of returned.
    """

    def __init__(self, *replies: Union[str, Exception]):
        self.replies = list(replies) or ["A grounded answer."]
        self.calls: List[Dict] = []

    async def complete(self, system_prompt, user_prompt, temperature=0.3, max_tokens=500) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        reply = self.replies[min(len(self.calls), len(self.replies)) - 1]
        if isinstance(reply, Exception):
            raise reply
        return reply


def failing_llm() -> FakeLLM:
    return FakeLLM(GenerationFailure("provider down"))


# ---------------------------------------------------------------------------
# STORES
# ---------------------------------------------------------------------------

class InMemoryDocumentStore(IDocumentStore):
    def __init__(self, documents: Optional[List[Document]] = None):
        self.documents: Dict[str, Document] = {d.id: d for d in documents or []}
        self.similar: Dict[str, List[SimilarChunk]] = {}
        self.similar_error: Optional[Exception] = None
        self.full_content: Dict[str, Optional[str]] = {}
        self.get_document_calls: List[str] = []
        self.extracted_updates: Dict[str, str] = {}

    async def get_document(self, document_id: str) -> Optional[Document]:
        self.get_document_calls.append(document_id)
        return self.documents.get(document_id)

    async def get_full_document_content(self, document_id: str) -> Optional[str]:
        if document_id in self.full_content:
            return self.full_content[document_id]
        doc = self.documents.get(document_id)
        if doc is None:
            return None
        if doc.chunks:
            return "".join(p.text for p in doc.chunks)
        return doc.raw_content

    async def update_extracted_content(self, document_id: str, text: str) -> bool:
        self.extracted_updates[document_id] = text
        return document_id in self.documents

    async def find_similar_chunks(self, embedding, document_id, top_k=5) -> List[SimilarChunk]:
        if self.similar_error is not None:
            raise self.similar_error
        return self.similar.get(document_id, [])[:top_k]

    async def get_chunks(self, document_id: str) -> List[Passage]:
        doc = self.documents.get(document_id)
        return list(doc.chunks) if doc else []

    async def get_by_hash(self, file_hash: str) -> Optional[Document]:
        for doc in self.documents.values():
            if doc.file_hash == file_hash:
                return doc
        return None

    async def save_document(self, document: Document) -> Document:
        self.documents[document.id] = document
        return document


class FakeVectorStore(IVectorStore):
    def __init__(self, accept: bool = True):
        self.accept = accept
        self.added: Dict[str, List[Passage]] = {}

    async def add_chunks(self, document_id: str, passages: List[Passage]) -> bool:
        if not self.accept:
            return False
        self.added[document_id] = list(passages)
        return True

    async def search(self, query_embedding, document_id, top_k=5) -> List[SimilarChunk]:
        return []

    async def delete_by_document(self, document_id: str) -> bool:
        return self.added.pop(document_id, None) is not None


# ---------------------------------------------------------------------------
# EXTRACTION
# ---------------------------------------------------------------------------

class FakeExtractor(IBinaryExtractor):
    def __init__(self, result: Union[str, Callable[[bytes], str]] = "extracted text"):
        self.result = result
        self.received: List[bytes] = []

    def extract_text(self, data: bytes) -> str:
        self.received.append(data)
        if callable(self.result):
            return self.result(data)
        return self.result


class BrokenExtractor(IBinaryExtractor):
    def extract_text(self, data: bytes) -> str:
        raise ValueError("corrupt file")


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def embedding_service():
    return FakeEmbeddingService()


@pytest.fixture
def llm():
    return FakeLLM("A grounded answer.")


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def inline_cache():
    return InlineDocumentCache(max_entries=10, ttl_seconds=60)


@pytest.fixture
def pdf_extractor():
    return FakeExtractor("Text extracted from the PDF. The payment is due on delivery.")


@pytest.fixture
def text_extractor(pdf_extractor):
    return TextExtractor({
        ContentKind.PDF: pdf_extractor,
        ContentKind.DOCX: FakeExtractor("Text extracted from the DOCX."),
    })
