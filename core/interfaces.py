# core/interfaces.py
"""Core interfaces for the document QA system"""
from abc import ABC, abstractmethod
from typing import List, Optional

from core.domain import Document, Passage, SimilarChunk


# ============= Vector Store Interface =============
class IVectorStore(ABC):
    """Interface for stored chunk embeddings, keyed by document"""

    @abstractmethod
    async def add_chunks(self, document_id: str, passages: List[Passage]) -> bool:
        """Add embedded passages of a document"""
        pass

    @abstractmethod
    async def search(
        self, query_embedding: List[float], document_id: str, top_k: int = 5
    ) -> List[SimilarChunk]:
        """Search a single document's chunks by similarity"""
        pass

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> bool:
        """Delete all chunks for a document"""
        pass


# ============= Document Store Interface =============
class IDocumentStore(ABC):
    """
    Persistent document store consumed by the QA pipeline.

    Reads are the hot path; `update_extracted_content` is a best-effort cache
    fill and `save_document` is only used by ingestion.
    """

    @abstractmethod
    async def get_document(self, document_id: str) -> Optional[Document]:
        """Canonical document, including its stored chunks when chunked"""
        pass

    @abstractmethod
    async def get_full_document_content(self, document_id: str) -> Optional[str]:
        """Whole document text (extracted text, raw content or joined chunks)"""
        pass

    @abstractmethod
    async def update_extracted_content(self, document_id: str, text: str) -> bool:
        """Cache extracted text for a binary document"""
        pass

    @abstractmethod
    async def find_similar_chunks(
        self, embedding: List[float], document_id: str, top_k: int = 5
    ) -> List[SimilarChunk]:
        """Vector search over the document's stored chunk embeddings"""
        pass

    @abstractmethod
    async def get_chunks(self, document_id: str) -> List[Passage]:
        """Stored chunks in document order"""
        pass

    @abstractmethod
    async def get_by_hash(self, file_hash: str) -> Optional[Document]:
        """Find document by SHA256 hash for duplicate detection."""
        pass

    @abstractmethod
    async def save_document(self, document: Document) -> Document:
        """Insert or replace a document and its chunks"""
        pass


# ============= Embedding Service Interface =============
class IEmbeddingService(ABC):
    """Interface for embedding generation"""

    @abstractmethod
    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for text chunks"""
        pass

    @abstractmethod
    async def generate_query_embedding(self, query: str) -> List[float]:
        """Generate embedding for a question"""
        pass


# ============= Generation Service Interface =============
class ILLMService(ABC):
    """Interface for text generation providers"""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> str:
        """
        Generate a completion.

        Raises:
            GenerationFailure: on any provider error
        """
        pass


# ============= Binary Extractor Interface =============
class IBinaryExtractor(ABC):
    """Format-specific text extraction (PDF, DOCX)"""

    @abstractmethod
    def extract_text(self, data: bytes) -> str:
        """Extract plain text from raw bytes. May raise on malformed input."""
        pass
