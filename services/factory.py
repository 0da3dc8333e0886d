# services/factory.py
import logging
from functools import lru_cache
from typing import Optional

import chromadb
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.domain import ContentKind
from core.interfaces import IDocumentStore, IEmbeddingService, ILLMService, IVectorStore
from database.session import get_db
from infrastructure.embedding_services import OpenAIEmbeddingService, SentenceTransformerEmbedding
from infrastructure.inline_cache import InlineDocumentCache
from infrastructure.llm_services import OllamaLLMService, OpenAILLMService
from infrastructure.repositories import SQLDocumentStore
from infrastructure.text_extractors import MammothDocxExtractor, PyMuPDFTextExtractor
from infrastructure.vector_stores import ChromaDBVectorStore
from services.content import TextExtractor
from services.ingestion_service import DocumentIngestionService
from services.rag_service import RetrievalOrchestrator

logger = logging.getLogger(settings.LOGGER_NAME)


# Process-wide singletons (heavy clients, in-memory state)
@lru_cache(maxsize=1)
def get_vector_store() -> IVectorStore:
    client = chromadb.PersistentClient(path=settings.VECTOR_DB_PATH)
    return ChromaDBVectorStore(
        client,
        collection_name=settings.VECTOR_COLLECTION_NAME,
        match_threshold=settings.STORED_MATCH_THRESHOLD,
    )


@lru_cache(maxsize=1)
def get_embedding_service() -> IEmbeddingService:
    """Create embedding service based on configuration."""
    provider = settings.EMBEDDING_PROVIDER.lower()
    if provider == "openai":
        return OpenAIEmbeddingService(settings.OPENAI_API_KEY, model=settings.OPENAI_EMBEDDING_MODEL)
    if provider == "sentence_transformers":
        return SentenceTransformerEmbedding(settings.EMBEDDING_MODEL_NAME)
    raise ValueError(f"Unknown embedding provider: {settings.EMBEDDING_PROVIDER}")


@lru_cache(maxsize=1)
def get_llm_service() -> Optional[ILLMService]:
    """Generation provider, or None (demo mode) when none is configured."""
    provider = settings.LLM_PROVIDER.strip().lower()
    if not provider:
        logger.warning("[FACTORY] LLM_PROVIDER is empty, running in demo mode")
        return None
    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            logger.warning("[FACTORY] OPENAI_API_KEY is not set, running in demo mode")
            return None
        return OpenAILLMService(settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL_NAME)
    if provider == "ollama":
        return OllamaLLMService(settings.LLM_BASE_URL, settings.LLM_MODEL_NAME)
    raise ValueError(f"Unknown LLM provider: {settings.LLM_PROVIDER}")


@lru_cache(maxsize=1)
def get_inline_cache() -> InlineDocumentCache:
    return InlineDocumentCache(
        max_entries=settings.INLINE_CACHE_MAX_ENTRIES,
        ttl_seconds=settings.INLINE_CACHE_TTL_SECONDS,
    )


def get_text_extractor() -> TextExtractor:
    return TextExtractor({
        ContentKind.PDF: PyMuPDFTextExtractor(),
        ContentKind.DOCX: MammothDocxExtractor(),
    })


def get_document_store(
    session: AsyncSession = Depends(get_db),
    vector_store: IVectorStore = Depends(get_vector_store),
) -> IDocumentStore:
    """Create document store with injected session."""
    return SQLDocumentStore(session, vector_store)


def get_question_embedding_service(
    llm_service: Optional[ILLMService] = Depends(get_llm_service),
) -> Optional[IEmbeddingService]:
    """Embedding provider for question answering; not loaded in demo mode."""
    if llm_service is None:
        return None
    return get_embedding_service()


# Main service providers using FastAPI DI
def get_retrieval_orchestrator(
    document_store: IDocumentStore = Depends(get_document_store),
    embedding_service: Optional[IEmbeddingService] = Depends(get_question_embedding_service),
    llm_service: Optional[ILLMService] = Depends(get_llm_service),
    inline_cache: InlineDocumentCache = Depends(get_inline_cache),
    text_extractor: TextExtractor = Depends(get_text_extractor),
) -> RetrievalOrchestrator:
    return RetrievalOrchestrator(
        document_store=document_store,
        embedding_service=embedding_service,
        llm_service=llm_service,
        inline_cache=inline_cache,
        text_extractor=text_extractor,
    )


def get_ingestion_service(
    document_store: IDocumentStore = Depends(get_document_store),
    embedding_service: IEmbeddingService = Depends(get_embedding_service),
    vector_store: IVectorStore = Depends(get_vector_store),
    text_extractor: TextExtractor = Depends(get_text_extractor),
) -> DocumentIngestionService:
    return DocumentIngestionService(
        document_store=document_store,
        embedding_service=embedding_service,
        vector_store=vector_store,
        text_extractor=text_extractor,
    )
