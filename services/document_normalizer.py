# services/document_normalizer.py
"""
Maps upstream document records into the canonical `Document`.

Accepted shapes (keys may be camelCase or snake_case):
    nested: {"metadata": {...}, "content": {...}, "analysis": {...}, "chunks": [...]}
    flat:   {"id": ..., "filename": ..., "content": "...", "extracted_text": ..., ...}

Structured facts are looked up in `analysis`, then `content`, then `metadata`.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from config import settings
from core.domain import Document, InputError, Passage

logger = logging.getLogger(settings.LOGGER_NAME)


def _pick(record: Any, *keys: str, default=None):
    """First present, non-None value among `keys` in a dict."""
    if not isinstance(record, dict):
        return default
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


def _structured_facts(analysis: Any, content: Any, metadata: Any) -> Optional[Dict[str, Any]]:
    for source, name in ((analysis, "analysis"), (content, "content"), (metadata, "metadata")):
        facts = _pick(source, "structuredData", "structured_data")
        if isinstance(facts, dict) and facts:
            logger.debug(f"[NORMALIZE] Found structured data in document.{name}")
            return facts
    return None


def _chunks(raw_chunks: Any) -> List[Passage]:
    if not isinstance(raw_chunks, list):
        return []

    indexed = []
    for position, chunk in enumerate(raw_chunks):
        if isinstance(chunk, str):
            text, number, embedding = chunk, position, None
        elif isinstance(chunk, dict):
            text = _pick(chunk, "content", "text", default="")
            number = _pick(chunk, "chunkNumber", "chunk_number", default=position)
            embedding = _pick(chunk, "embedding")
        else:
            continue
        if text:
            indexed.append((number, position, text, embedding))

    indexed.sort(key=lambda item: (item[0], item[1]))
    return [
        Passage(text=text, offset=None, embedding=list(embedding) if embedding else None)
        for _, _, text, embedding in indexed
    ]


def normalize_document(payload: Dict[str, Any], document_id: Optional[str] = None) -> Document:
    """
    Raises:
        InputError: payload is not a JSON object
    """
    if not isinstance(payload, dict):
        raise InputError("Document payload must be a JSON object")

    nested = isinstance(payload.get("metadata"), dict) or isinstance(payload.get("content"), dict)
    metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else {}
    content = payload.get("content") if isinstance(payload.get("content"), dict) else {}
    analysis = payload.get("analysis") if isinstance(payload.get("analysis"), dict) else {}

    # Flat records carry everything at the top level
    flat = payload if not nested else {}

    doc_id = (
        _pick(metadata, "id")
        or _pick(content, "id")
        or _pick(payload, "id", "documentId", "document_id")
        or document_id
        or str(uuid.uuid4())
    )

    filename = (
        _pick(metadata, "filename", "fileName", "file_name")
        or _pick(payload, "filename", "fileName", "file_name")
        or "Document"
    )

    raw_content = _pick(content, "content") if nested else _pick(flat, "content", "rawContent", "raw_content")
    if raw_content is not None and not isinstance(raw_content, (str, bytes)):
        raw_content = str(raw_content)

    extracted_text = _pick(content, "extractedText", "extracted_text") or _pick(
        flat, "extractedText", "extracted_text"
    )
    has_extracted = _pick(metadata, "hasExtractedText", "has_extracted_text") if nested else None
    if has_extracted is False:
        extracted_text = None

    flags = metadata if nested else flat
    chunks = _chunks(_pick(payload, "chunks"))
    is_chunked = bool(_pick(flags, "chunked", "isChunkedExternally", "is_chunked_externally", default=bool(chunks)))
    has_embeddings = bool(_pick(flags, "hasEmbeddings", "has_embeddings", "hasStoredEmbeddings", "has_stored_embeddings", default=False))

    facts = _structured_facts(analysis, content, metadata) if nested else _structured_facts(
        None, None, flat
    )

    return Document(
        id=str(doc_id),
        filename=str(filename),
        raw_content=raw_content,
        extracted_text=extracted_text or None,
        is_chunked_externally=is_chunked,
        has_stored_embeddings=has_embeddings,
        structured_facts=facts,
        chunks=chunks,
        file_hash=_pick(flags, "fileHash", "file_hash"),
    )
