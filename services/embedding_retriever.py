# services/embedding_retriever.py
"""Embedding-based passage retrieval over fresh or stored embeddings."""
import asyncio
import logging
from dataclasses import replace
from typing import List, Optional

from config import settings
from core.domain import EmbeddingFailure, Passage, RAGError, Result, RetrievalResult
from core.interfaces import IDocumentStore, IEmbeddingService
from services.keyword_retriever import KeywordFallbackRetriever
from services.similarity import SimilarityRanker

logger = logging.getLogger(settings.LOGGER_NAME)

UNSCORED = 1.0


class EmbeddingRetriever:
    """
    Two modes:
      - fresh: embed the question and every passage, rank by cosine
      - stored: embed only the question and query the document store's index
    """

    def __init__(
        self,
        embedding_service: IEmbeddingService,
        document_store: Optional[IDocumentStore] = None,
        keyword_retriever: Optional[KeywordFallbackRetriever] = None,
        ranker: Optional[SimilarityRanker] = None,
        batch_size: Optional[int] = None,
        batch_delay_ms: Optional[int] = None,
    ):
        self.embedding_service = embedding_service
        self.document_store = document_store
        self.keyword_retriever = keyword_retriever or KeywordFallbackRetriever()
        self.ranker = ranker or SimilarityRanker()
        self.batch_size = max(1, batch_size if batch_size is not None else settings.EMBEDDING_BATCH_SIZE)
        self.batch_delay_ms = (
            batch_delay_ms if batch_delay_ms is not None else settings.EMBEDDING_BATCH_DELAY_MS
        )

    # ============ FRESH EMBEDDINGS ============

    async def embed_passages(self, passages: List[Passage]) -> List[Passage]:
        """Attach embeddings to passages, one provider call per batch."""
        embedded: List[Passage] = []
        total = len(passages)

        for i in range(0, total, self.batch_size):
            batch = passages[i:i + self.batch_size]
            logger.debug(f"[EMBED] Generating embeddings for chunks {i + 1} to {i + len(batch)}")

            vectors = await self.embedding_service.generate_embeddings([p.text for p in batch])
            if len(vectors) != len(batch):
                raise EmbeddingFailure(
                    f"Provider returned {len(vectors)} embeddings for {len(batch)} passages"
                )
            embedded.extend(replace(p, embedding=list(v)) for p, v in zip(batch, vectors))

            # Pause between batches to stay under provider rate limits
            if i + self.batch_size < total and self.batch_delay_ms > 0:
                await asyncio.sleep(self.batch_delay_ms / 1000)

        return embedded

    async def rank(
        self, question: str, passages: List[Passage], top_k: int = 5
    ) -> Result[List[RetrievalResult], RAGError]:
        if not passages:
            logger.warning("[EMBED] No passages provided for relevance search")
            return Result.success([])

        try:
            logger.info(f"[EMBED] Ranking {len(passages)} passages")
            question_embedding = await self.embedding_service.generate_query_embedding(question)
            embedded = await self.embed_passages(passages)
            results = self.ranker.rank(question_embedding, embedded)[:top_k]
        except RAGError as e:
            logger.error(f"[EMBED] Fresh embedding ranking failed: {e}")
            return Result.failure(e)
        except Exception as e:
            logger.error(f"[EMBED] Fresh embedding ranking failed: {e}", exc_info=True)
            return Result.failure(EmbeddingFailure(str(e)))

        if results:
            logger.info(f"[EMBED] Top chunk score: {results[0].score:.4f}")
        return Result.success(results)

    async def retrieve(self, question: str, passages: List[Passage], top_k: int = 5) -> List[RetrievalResult]:
        """Fresh ranking; on failure the first `top_k` passages, unscored."""
        result = await self.rank(question, passages, top_k)
        if result.ok:
            return result.value

        logger.info("[EMBED] Falling back to simple chunk return without scoring")
        return [RetrievalResult(text=p.text, score=UNSCORED) for p in passages[:top_k]]

    # ============ STORED EMBEDDINGS ============

    async def search_stored(
        self, question: str, document_id: str, top_k: int = 5
    ) -> Result[List[RetrievalResult], RAGError]:
        if self.document_store is None:
            return Result.failure(EmbeddingFailure("No document store configured for stored search"))

        try:
            logger.info(f"[EMBED] Finding relevant chunks using stored embeddings for document {document_id}")
            embedding = await self.embedding_service.generate_query_embedding(question)
            similar = await self.document_store.find_similar_chunks(embedding, document_id, top_k)
        except RAGError as e:
            logger.error(f"[EMBED] Stored embedding search failed: {e}")
            return Result.failure(e)
        except Exception as e:
            logger.error(f"[EMBED] Stored embedding search failed: {e}", exc_info=True)
            return Result.failure(EmbeddingFailure(str(e)))

        if not similar:
            return Result.failure(EmbeddingFailure(f"No stored chunks matched for document {document_id}"))

        results = [RetrievalResult(text=s.chunk.text, score=s.similarity) for s in similar]
        results.sort(key=lambda r: r.score, reverse=True)
        logger.info(f"[EMBED] Found {len(results)} similar chunks, top score {results[0].score:.4f}")
        return Result.success(results[:top_k])

    async def retrieve_from_stored_embeddings(
        self, question: str, document_id: str, top_k: int = 5
    ) -> List[RetrievalResult]:
        """Stored search; on failure keyword-score the stored chunk set, else []."""
        result = await self.search_stored(question, document_id, top_k)
        if result.ok:
            return result.value

        logger.info("[EMBED] Falling back to regular document chunks")
        try:
            chunks = await self.document_store.get_chunks(document_id) if self.document_store else []
            if not chunks:
                raise RAGError(f"Document {document_id} has no stored chunks")
            logger.info(f"[EMBED] Falling back to {len(chunks)} document chunks")
            return self.keyword_retriever.retrieve(question, chunks, top_k)
        except Exception as e:
            logger.error(f"[EMBED] Fallback error: {e}")
            return []
