# infrastructure/repositories.py
"""Database repository implementations"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.domain import Document, EmbeddingFailure, Passage, SimilarChunk
from core.interfaces import IDocumentStore, IVectorStore
from database.session import ChunkEntity, DocumentEntity

logger = logging.getLogger(settings.LOGGER_NAME)

STRUCTURED_FACTS_KEY = "structured_data"


class SQLDocumentStore(IDocumentStore):
    """
    Documents and their chunk texts in SQL; chunk embeddings in the vector store.
    """

    def __init__(self, session: AsyncSession, vector_store: Optional[IVectorStore] = None):
        self.session = session
        self.vector_store = vector_store

    def _to_domain(self, db_doc: Optional[DocumentEntity], chunks: List[ChunkEntity]) -> Optional[Document]:
        """Converts an SQLAlchemy entity to a domain model."""
        if db_doc is None:
            return None

        meta = db_doc.meta or {}
        return Document(
            id=db_doc.id,  # type: ignore
            filename=db_doc.filename,  # type: ignore
            raw_content=db_doc.content,  # type: ignore
            extracted_text=db_doc.extracted_text,  # type: ignore
            is_chunked_externally=bool(db_doc.chunked),
            has_stored_embeddings=bool(db_doc.has_embeddings),
            structured_facts=meta.get(STRUCTURED_FACTS_KEY) or None,
            chunks=[Passage(text=c.content) for c in chunks],  # type: ignore
            file_hash=db_doc.file_hash,  # type: ignore
        )

    async def _load_chunks(self, document_id: str) -> List[ChunkEntity]:
        result = await self.session.execute(
            select(ChunkEntity)
            .where(ChunkEntity.document_id == document_id)
            .order_by(ChunkEntity.chunk_number.asc())
        )
        return list(result.scalars().all())

    async def get_document(self, document_id: str) -> Optional[Document]:
        db_doc = await self.session.get(DocumentEntity, document_id)
        if db_doc is None:
            return None
        return self._to_domain(db_doc, await self._load_chunks(document_id))

    async def get_by_hash(self, file_hash: str) -> Optional[Document]:
        result = await self.session.execute(
            select(DocumentEntity).where(DocumentEntity.file_hash == file_hash)
        )
        db_doc = result.scalar_one_or_none()
        if db_doc is None:
            return None
        return self._to_domain(db_doc, await self._load_chunks(db_doc.id))

    async def get_chunks(self, document_id: str) -> List[Passage]:
        return [Passage(text=c.content) for c in await self._load_chunks(document_id)]  # type: ignore

    async def get_full_document_content(self, document_id: str) -> Optional[str]:
        """Extracted text, else raw content, else the chunks joined in order."""
        db_doc = await self.session.get(DocumentEntity, document_id)
        if db_doc is None:
            return None

        if db_doc.extracted_text:
            return db_doc.extracted_text  # type: ignore

        if not db_doc.chunked:
            return db_doc.content  # type: ignore

        chunks = await self._load_chunks(document_id)
        if not chunks:
            logger.error(f"[STORE] No chunks found for document: {document_id}")
            return None
        # Stored chunks are contiguous, joining them restores the text
        return "".join(c.content for c in chunks)  # type: ignore

    async def update_extracted_content(self, document_id: str, text: str) -> bool:
        db_doc = await self.session.get(DocumentEntity, document_id)
        if not db_doc:
            return False
        db_doc.extracted_text = text  # type: ignore
        await self.session.commit()
        return True

    async def find_similar_chunks(
        self, embedding: List[float], document_id: str, top_k: int = 5
    ) -> List[SimilarChunk]:
        if self.vector_store is None:
            raise EmbeddingFailure("No vector store configured")
        return await self.vector_store.search(embedding, document_id, top_k)

    async def save_document(self, document: Document) -> Document:
        """Insert or replace the document row and its chunk rows."""
        content = document.raw_content
        if isinstance(content, bytes):
            content = content.decode("latin-1")

        db_doc = await self.session.get(DocumentEntity, document.id)
        if db_doc is None:
            db_doc = DocumentEntity(id=document.id)
            self.session.add(db_doc)
        else:
            for old_chunk in await self._load_chunks(document.id):
                await self.session.delete(old_chunk)
            # Flush deletes first, replacement chunks reuse the same ids
            await self.session.flush()

        db_doc.filename = document.filename  # type: ignore
        db_doc.file_hash = document.file_hash  # type: ignore
        db_doc.content = content  # type: ignore
        db_doc.extracted_text = document.extracted_text  # type: ignore
        db_doc.chunked = document.is_chunked_externally  # type: ignore
        db_doc.has_embeddings = document.has_stored_embeddings  # type: ignore
        db_doc.meta = {STRUCTURED_FACTS_KEY: document.structured_facts} if document.structured_facts else {}  # type: ignore

        for number, passage in enumerate(document.chunks, start=1):
            self.session.add(ChunkEntity(
                id=f"chunk_{document.id}_{number}",
                document_id=document.id,
                chunk_number=number,
                content=passage.text,
            ))

        await self.session.commit()
        logger.info(f"[STORE] Saved document {document.id} with {len(document.chunks)} chunks")
        return document
