# services/ingestion_service.py
"""Stores uploaded files and upstream document records for later questions."""
import logging
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional

from config import settings
from core.domain import (
    Document,
    DuplicateDocumentError,
    ErrorCode,
    InputError,
    Passage,
)
from core.interfaces import IDocumentStore, IEmbeddingService, IVectorStore
from services.chunker import Chunker
from services.content import TextExtractor, classify_content
from services.document_normalizer import normalize_document
from services.embedding_retriever import EmbeddingRetriever
from utils.common import get_file_hash, sanitize_filename

logger = logging.getLogger(settings.LOGGER_NAME)

PREVIEW_LENGTH = 4000
PREVIEW_NOTICE = "\n\n[Content preview only. Full content available in chunks.]"


class DocumentIngestionService:
    def __init__(
        self,
        document_store: IDocumentStore,
        embedding_service: IEmbeddingService,
        vector_store: Optional[IVectorStore],
        text_extractor: TextExtractor,
        chunker: Optional[Chunker] = None,
        max_file_size: Optional[int] = None,
    ):
        self.document_store = document_store
        self.vector_store = vector_store
        self.text_extractor = text_extractor
        # Zero overlap keeps stored chunks contiguous
        self.chunker = chunker or Chunker(overlap=0)
        self.embedding_retriever = EmbeddingRetriever(embedding_service, document_store)
        self.max_file_size = max_file_size if max_file_size is not None else settings.MAX_FILE_SIZE

    # ============ UPLOAD ============

    async def ingest_upload(self, filename: str, data: bytes, chunk: bool = True) -> Document:
        """
        Raises:
            InputError: empty or oversized file
            DuplicateDocumentError: same content already stored
        """
        if not data:
            raise InputError("Uploaded file is empty")
        if len(data) > self.max_file_size:
            raise InputError(
                f"File exceeds maximum size of {self.max_file_size} bytes", ErrorCode.FILE_TOO_LARGE
            )

        file_hash = get_file_hash(data)
        existing = await self.document_store.get_by_hash(file_hash)
        if existing is not None:
            logger.warning(f"[INGEST] Duplicate upload of '{filename}', matches document {existing.id}")
            raise DuplicateDocumentError(f"This file has already been uploaded as document {existing.id}")

        safe_name = sanitize_filename(filename or "Document")
        classification = classify_content(data)
        logger.info(f"[INGEST] '{safe_name}' classified as {classification.kind.value}, size {len(data)}")

        document = Document(id=f"doc_{uuid.uuid4().hex}", filename=safe_name, file_hash=file_hash)

        if classification.is_binary:
            text = await self.text_extractor.extract(data, classification.kind)
            document.raw_content = data.decode("latin-1")
            document.extracted_text = text
        else:
            text = data.decode("utf-8", errors="replace")
            document.raw_content = text

        if chunk and text:
            await self._chunk_and_embed(document, text)
            if not classification.is_binary and len(text) > PREVIEW_LENGTH:
                document.raw_content = text[:PREVIEW_LENGTH] + PREVIEW_NOTICE

        saved = await self.document_store.save_document(document)
        logger.info(
            f"[INGEST] Stored document {saved.id}: chunked={saved.is_chunked_externally}, "
            f"embeddings={saved.has_stored_embeddings}"
        )
        return saved

    async def _chunk_and_embed(self, document: Document, text: str) -> None:
        passages = self.chunker.chunk(text)
        if not passages:
            return

        document.is_chunked_externally = True
        document.chunks = [Passage(text=p.text, offset=p.offset) for p in passages]

        if self.vector_store is None:
            logger.info("[INGEST] No vector store configured, storing chunks without embeddings")
            return

        try:
            embedded = await self.embedding_retriever.embed_passages(passages)
            stored = await self.vector_store.add_chunks(document.id, embedded)
        except Exception as e:
            logger.error(f"[INGEST] Embedding failed for {document.id}, keeping chunks only: {e}")
            return

        document.has_stored_embeddings = bool(stored)

    # ============ UPSTREAM RECORDS ============

    async def ingest_payload(self, payload: Dict[str, Any]) -> Document:
        """
        Store an upstream document record as-is (structured facts included).

        Raises:
            InputError: payload is not a JSON object or carries no content
        """
        document = normalize_document(payload)
        if not document.raw_content and not document.extracted_text and not document.chunks:
            raise InputError("Document record has no content")

        if document.chunks and not document.is_chunked_externally:
            document = replace(document, is_chunked_externally=True)

        if document.has_stored_embeddings and self.vector_store is not None:
            document = await self._store_record_embeddings(document)

        saved = await self.document_store.save_document(document)
        logger.info(f"[INGEST] Stored document record {saved.id} ('{saved.filename}')")
        return saved

    async def _store_record_embeddings(self, document: Document) -> Document:
        """Index embeddings shipped with the record; without them the flag is cleared."""
        embedded: List[Passage] = [p for p in document.chunks if p.embedding]
        if not embedded:
            return replace(document, has_stored_embeddings=False)

        # Re-submitted records replace their previous vectors
        await self.vector_store.delete_by_document(document.id)
        stored = await self.vector_store.add_chunks(document.id, embedded)
        return replace(document, has_stored_embeddings=bool(stored))
