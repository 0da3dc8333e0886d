# infrastructure/vector_stores.py
"""ChromaDB store for per-document chunk embeddings"""
import asyncio
import logging
from typing import Any, List

from config import settings
from core.domain import Passage, SimilarChunk
from core.interfaces import IVectorStore

logger = logging.getLogger(settings.LOGGER_NAME)


class ChromaDBVectorStore(IVectorStore):
    """
    One collection shared by all documents; every chunk carries its
    `document_id` in metadata and searches are filtered on it.

    The collection uses cosine space, so similarity = 1 - distance, the same
    scale as freshly computed cosine scores. Matches below `match_threshold`
    are dropped.
    """

    def __init__(self, client: Any, collection_name: str = "document_chunks", match_threshold: float = 0.5):
        self._client = client
        self._collection_name = collection_name
        self._collection: Any = None
        self.match_threshold = match_threshold

    async def _ensure_collection(self):
        """Lazy initialization of collection"""
        if not self._collection:
            self._collection = await asyncio.to_thread(
                self._client.get_or_create_collection,
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    async def add_chunks(self, document_id: str, passages: List[Passage]) -> bool:
        """Store embedded passages; passages without an embedding are skipped"""
        try:
            await self._ensure_collection()

            indexed = [(i, p) for i, p in enumerate(passages) if p.embedding]
            if not indexed:
                return True

            await asyncio.to_thread(
                self._collection.add,
                ids=[f"{document_id}_{i}" for i, _ in indexed],
                documents=[p.text for _, p in indexed],
                embeddings=[list(p.embedding) for _, p in indexed],
                metadatas=[{"document_id": document_id, "chunk_number": i} for i, _ in indexed],
            )
            logger.info(f"[VECTOR] Stored {len(indexed)} chunk embeddings for document {document_id}")
            return True

        except Exception as e:
            logger.error(f"[VECTOR] Failed to add chunks to ChromaDB: {e}")
            return False

    async def search(self, query_embedding: List[float], document_id: str, top_k: int = 5) -> List[SimilarChunk]:
        try:
            await self._ensure_collection()

            results = await asyncio.to_thread(
                self._collection.query,
                query_embeddings=[query_embedding],
                n_results=top_k,
                where={"document_id": document_id},
                include=["metadatas", "documents", "distances"],
            )
        except Exception as e:
            logger.error(f"[VECTOR] Search failed in ChromaDB: {e}")
            return []

        matches: List[SimilarChunk] = []
        if results["ids"] and results["ids"][0]:
            for i, chunk_id in enumerate(results["ids"][0]):
                similarity = max(-1.0, min(1.0, 1.0 - results["distances"][0][i]))
                if similarity < self.match_threshold:
                    continue
                matches.append(SimilarChunk(
                    chunk=Passage(text=results["documents"][0][i]),
                    similarity=similarity,
                    chunk_id=chunk_id,
                ))

        logger.debug(f"[VECTOR] {len(matches)} chunks above threshold {self.match_threshold} for {document_id}")
        return matches

    async def delete_by_document(self, document_id: str) -> bool:
        """Delete all chunks for a document"""
        try:
            await self._ensure_collection()
            await asyncio.to_thread(
                self._collection.delete,
                where={"document_id": document_id}
            )
            return True
        except Exception as e:
            logger.error(f"[VECTOR] Failed to delete document chunks: {e}")
            return False
