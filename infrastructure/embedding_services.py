# infrastructure/embedding_services.py
"""Embedding providers: local sentence-transformers and the OpenAI API"""
import asyncio
import logging
from typing import List, Optional

import numpy as np
from openai import AsyncOpenAI
from sentence_transformers import SentenceTransformer

from config import settings
from core.domain import EmbeddingFailure
from core.interfaces import IEmbeddingService

logger = logging.getLogger(settings.LOGGER_NAME)


class SentenceTransformerEmbedding(IEmbeddingService):
    """
    Local sentence-transformers model returning unit-length vectors, so
    stored search scores (1 - cosine distance) and fresh cosine scores
    share one scale.
    """

    _model: Optional[SentenceTransformer] = None  # shared by every instance

    def __init__(self, model_name: str = "paraphrase-multilingual-mpnet-base-v2"):
        if SentenceTransformerEmbedding._model is None:
            SentenceTransformerEmbedding._model = self._load_model(model_name)
        self.model = SentenceTransformerEmbedding._model

    @staticmethod
    def _load_model(model_name: str) -> SentenceTransformer:
        """Local model cache first, then the hub.

        Raises:
            EmbeddingFailure: the model is neither cached nor downloadable
        """
        try:
            model = SentenceTransformer(model_name, local_files_only=True)
            logger.info(f"[EMBED] Loaded {model_name} from local cache")
            return model
        except Exception as e:
            logger.warning(f"[EMBED] {model_name} not cached ({e}), downloading")

        try:
            model = SentenceTransformer(model_name)
        except Exception as e:
            raise EmbeddingFailure(f"Could not load embedding model {model_name}: {e}") from e
        logger.info(f"[EMBED] Downloaded {model_name}")
        return model

    @staticmethod
    def _l2_normalize(arr: np.ndarray) -> np.ndarray:
        """(N, D) -> (N, D) rows scaled to unit length"""
        norms = np.linalg.norm(arr, axis=1, keepdims=True)
        norms[norms == 0] = 1e-12
        return arr / norms

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            raw = await asyncio.to_thread(self.model.encode, texts, convert_to_tensor=False)
        except Exception as e:
            raise EmbeddingFailure(f"Embedding generation failed: {e}") from e
        return self._l2_normalize(np.array(raw, dtype="float32")).tolist()

    async def generate_query_embedding(self, query: str) -> List[float]:
        try:
            raw = await asyncio.to_thread(self.model.encode, query, convert_to_tensor=False)
        except Exception as e:
            raise EmbeddingFailure(f"Query embedding failed: {e}") from e
        normalized = self._l2_normalize(np.array(raw, dtype="float32").reshape(1, -1))
        return normalized[0].tolist()


class OpenAIEmbeddingService(IEmbeddingService):
    """OpenAI embeddings API (text-embedding-3-small by default, 1536 dimensions)."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        timeout: int = settings.REQUEST_TIMEOUT,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            response = await self._client.embeddings.create(
                model=self.model, input=texts, encoding_format="float"
            )
        except Exception as e:
            logger.error(f"[EMBED] OpenAI embedding request failed: {e}")
            raise EmbeddingFailure(f"OpenAI embedding request failed: {e}") from e

        # The API may return items out of order; `index` is authoritative
        items = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in items]

    async def generate_query_embedding(self, query: str) -> List[float]:
        embeddings = await self.generate_embeddings([query])
        if not embeddings:
            raise EmbeddingFailure("OpenAI returned no embedding for the question")
        return embeddings[0]
