# services/retrieval_strategies.py
import logging
from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from config import settings
from core.domain import (
    ChunkingFailure,
    Passage,
    RAGError,
    Result,
    RetrievalMethod,
    RetrievalResult,
)
from services.embedding_retriever import UNSCORED, EmbeddingRetriever
from services.keyword_retriever import KeywordFallbackRetriever

logger = logging.getLogger(settings.LOGGER_NAME)

StrategyResult = Result[List[RetrievalResult], RAGError]


class RetrievalStrategy(ABC):
    """One tier of the retrieval fallback chain."""

    method: RetrievalMethod

    @abstractmethod
    async def retrieve(self, question: str, top_k: int = 5) -> StrategyResult:
        pass


class StoredEmbeddingStrategy(RetrievalStrategy):
    method = RetrievalMethod.STORED_EMBEDDING

    def __init__(self, retriever: EmbeddingRetriever, document_id: str):
        self._retriever = retriever
        self._document_id = document_id

    async def retrieve(self, question: str, top_k: int = 5) -> StrategyResult:
        return await self._retriever.search_stored(question, self._document_id, top_k)


class FreshEmbeddingStrategy(RetrievalStrategy):
    method = RetrievalMethod.FRESH_EMBEDDING

    def __init__(self, retriever: EmbeddingRetriever, passages: List[Passage]):
        self._retriever = retriever
        self._passages = passages

    async def retrieve(self, question: str, top_k: int = 5) -> StrategyResult:
        if not self._passages:
            return Result.failure(ChunkingFailure("No passages to embed"))
        return await self._retriever.rank(question, self._passages, top_k)


class KeywordStrategy(RetrievalStrategy):
    method = RetrievalMethod.KEYWORD

    def __init__(self, retriever: KeywordFallbackRetriever, passages: List[Passage]):
        self._retriever = retriever
        self._passages = passages

    async def retrieve(self, question: str, top_k: int = 5) -> StrategyResult:
        try:
            results = self._retriever.retrieve(question, self._passages, top_k)
        except Exception as e:
            logger.error(f"[RETRIEVE] Keyword scoring failed: {e}", exc_info=True)
            return Result.failure(RAGError(f"Keyword scoring failed: {e}"))

        if not results:
            return Result.failure(RAGError("Keyword scoring produced no passages"))
        return Result.success(results)


class UnscoredStrategy(RetrievalStrategy):
    """Terminal tier: the leading passages as-is. Always succeeds."""

    method = RetrievalMethod.UNSCORED

    def __init__(self, passages: List[Passage]):
        self._passages = passages

    async def retrieve(self, question: str, top_k: int = 5) -> StrategyResult:
        return Result.success(
            [RetrievalResult(text=p.text, score=UNSCORED) for p in self._passages[:top_k]]
        )


async def run_fallback_chain(
    strategies: Sequence[RetrievalStrategy], question: str, top_k: int = 5
) -> Tuple[RetrievalMethod, List[RetrievalResult]]:
    """
    Run strategies in order; the first success wins.

    An empty chain, or one where every tier fails, yields (UNSCORED, []).
    """
    for strategy in strategies:
        result = await strategy.retrieve(question, top_k)
        if result.ok:
            logger.info(
                f"[RETRIEVE] {strategy.method.value} returned {len(result.value)} passages"
            )
            return strategy.method, result.value
        logger.warning(f"[RETRIEVE] {strategy.method.value} failed, trying next: {result.error}")

    logger.warning("[RETRIEVE] All retrieval strategies failed")
    return RetrievalMethod.UNSCORED, []
