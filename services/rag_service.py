# services/rag_service.py
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from config import settings
from core.domain import (
    Answer,
    Document,
    InputError,
    NotFoundError,
    Passage,
    PipelineState,
    QuestionRequest,
    RAGError,
    RetrievalMethod,
    RetrievalResult,
)
from core.interfaces import IDocumentStore, IEmbeddingService, ILLMService
from infrastructure.inline_cache import InlineDocumentCache
from services.answer_composer import AnswerComposer
from services.chunker import Chunker
from services.content import TextExtractor, classify_content
from services.embedding_retriever import EmbeddingRetriever
from services.keyword_retriever import KeywordFallbackRetriever
from services.retrieval_strategies import (
    FreshEmbeddingStrategy,
    KeywordStrategy,
    RetrievalStrategy,
    StoredEmbeddingStrategy,
    UnscoredStrategy,
    run_fallback_chain,
)
from services.structured_router import StructuredDataRouter
from utils.common import preview

logger = logging.getLogger(settings.LOGGER_NAME)

DEMO_ANSWER = (
    "This is a demo response. To get real AI-powered answers, please configure "
    "a generation provider (LLM_PROVIDER) in the environment variables."
)
DEMO_SOURCE_TEXT = "This is a sample source text that would normally come from your document."
DEMO_SOURCE_SCORE = 0.95

STRUCTURED_SOURCE_TEXT = "This answer was generated from structured analysis of the document."
STRUCTURED_SOURCE_SCORE = 1.0


@dataclass
class ResolvedContent:
    """Text (or raw payload) the question will be answered against."""
    document_id: str
    filename: str
    content: Union[str, bytes]
    document: Optional[Document] = None  # None for inline content


class RetrievalOrchestrator:
    """
    Answers a question about one document.

    RESOLVE_CONTENT -> MAYBE_EXTRACT_BINARY -> TRY_STRUCTURED -> RETRIEVE -> COMPOSE -> DONE

    With no generation provider configured every request gets the demo answer.
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        embedding_service: Optional[IEmbeddingService],
        llm_service: Optional[ILLMService],
        inline_cache: InlineDocumentCache,
        text_extractor: TextExtractor,
        chunker: Optional[Chunker] = None,
        keyword_retriever: Optional[KeywordFallbackRetriever] = None,
        embedding_retriever: Optional[EmbeddingRetriever] = None,
        top_k: Optional[int] = None,
        cited_sources: Optional[int] = None,
    ):
        self.document_store = document_store
        self.llm_service = llm_service
        self.inline_cache = inline_cache
        self.text_extractor = text_extractor
        self.chunker = chunker or Chunker()
        self.keyword_retriever = keyword_retriever or KeywordFallbackRetriever()
        self.embedding_retriever = embedding_retriever or EmbeddingRetriever(
            embedding_service, document_store, self.keyword_retriever
        )
        self.router = StructuredDataRouter(llm_service)
        self.composer = AnswerComposer(llm_service) if llm_service is not None else None
        self.top_k = top_k if top_k is not None else settings.TOP_K
        self.cited_sources = cited_sources if cited_sources is not None else settings.CITED_SOURCES

    async def answer_question(self, request: QuestionRequest) -> Answer:
        """
        Raises:
            InputError: no document reference or content, or a blank question
            NotFoundError: `document_id` matches neither the inline cache nor the store
        """
        logger.info(
            f"[QA] Question received, documentId: {request.document_id}, "
            f"questionLength: {len(request.question or '')}"
        )

        if self.llm_service is None:
            logger.info("[QA] No generation provider configured, returning demo response")
            return self._demo_answer(request.document_id)

        self._validate(request)

        self._transition(PipelineState.RESOLVE_CONTENT)
        resolved = await self._resolve_content(request)

        self._transition(PipelineState.MAYBE_EXTRACT_BINARY)
        text = await self._maybe_extract_binary(resolved)
        logger.info(f"[QA] Content ready for processing: length={len(text)}, preview: {preview(text)}")

        self._transition(PipelineState.TRY_STRUCTURED)
        structured = await self._try_structured(request.question, resolved)
        if structured is not None:
            self._transition(PipelineState.DONE)
            return structured

        self._transition(PipelineState.RETRIEVE)
        method, results = await run_fallback_chain(
            self._build_strategies(resolved, text), request.question, self.top_k
        )
        logger.info(
            f"[QA] Found {len(results)} relevant chunks via {method.value}, "
            f"top score: {results[0].score if results else 'N/A'}"
        )

        self._transition(PipelineState.COMPOSE)
        answer_text = await self.composer.compose(request.question, results, resolved.filename)

        self._transition(PipelineState.DONE)
        return Answer(
            text=answer_text,
            sources=results[:self.cited_sources],
            method=method,
            document_id=resolved.document_id,
        )

    # ============ STAGES ============

    @staticmethod
    def _transition(state: PipelineState) -> None:
        logger.debug(f"[QA] -> {state.value}")

    @staticmethod
    def _validate(request: QuestionRequest) -> None:
        if not request.question or not request.question.strip():
            raise InputError("Question must not be empty")
        if not request.document_id and not request.inline_content:
            raise InputError("Document not found or content not provided")

    async def _resolve_content(self, request: QuestionRequest) -> ResolvedContent:
        if request.inline_content:
            filename = request.document_name or "Document"
            temp_id = self.inline_cache.put(request.inline_content, filename)
            logger.info(f"[QA] Document content provided directly, stored with tempId: {temp_id}")
            return ResolvedContent(document_id=temp_id, filename=filename, content=request.inline_content)

        cached = self.inline_cache.get(request.document_id)
        if cached is not None:
            logger.info(f"[QA] Retrieved document from inline cache, contentLength: {len(cached.content)}")
            return ResolvedContent(
                document_id=request.document_id, filename=cached.filename, content=cached.content
            )

        document = await self.document_store.get_document(request.document_id)
        if document is None:
            logger.warning(f"[QA] Document {request.document_id} not found")
            raise NotFoundError(f"Document not found: {request.document_id}")

        content = await self._stored_document_text(document)
        return ResolvedContent(
            document_id=document.id, filename=document.filename, content=content, document=document
        )

    async def _stored_document_text(self, document: Document) -> Union[str, bytes]:
        preview_content = document.raw_content or ""

        if document.extracted_text:
            logger.info(f"[QA] Using extracted text for document {document.id}, length: {len(document.extracted_text)}")
            return document.extracted_text

        if not document.is_chunked_externally:
            return preview_content

        if document.has_stored_embeddings:
            logger.info(f"[QA] Document {document.id} is chunked with stored embeddings, using preview content")
            return preview_content

        logger.info(f"[QA] Document {document.id} is chunked without embeddings, loading full content")
        try:
            full = await self.document_store.get_full_document_content(document.id)
        except Exception as e:
            logger.warning(f"[QA] Failed to load full content for {document.id}: {e}")
            full = None

        if full:
            return full
        logger.warning(f"[QA] Using preview content, length: {len(preview_content)}")
        return preview_content

    async def _maybe_extract_binary(self, resolved: ResolvedContent) -> str:
        classification = classify_content(resolved.content)
        if not classification.is_binary:
            if isinstance(resolved.content, bytes):
                return resolved.content.decode("utf-8", errors="replace")
            return resolved.content or ""

        logger.info(
            f"[QA] Document {resolved.document_id} contains binary {classification.kind.value} content, extracting text"
        )
        text = await self.text_extractor.extract(resolved.content, classification.kind)

        if resolved.document is not None:
            try:
                saved = await self.document_store.update_extracted_content(resolved.document_id, text)
                if saved:
                    logger.info(f"[QA] Saved extracted text for future use, length: {len(text)}")
            except Exception as e:
                logger.error(f"[QA] Error saving extracted text: {e}")

        return text

    async def _try_structured(self, question: str, resolved: ResolvedContent) -> Optional[Answer]:
        facts = resolved.document.structured_facts if resolved.document is not None else None
        if not facts or not self.router.can_answer_from_facts(question):
            return None

        logger.info("[QA] Attempting to answer from structured data")
        try:
            answer_text = await self.router.answer_from_facts(question, facts)
        except RAGError as e:
            logger.error(f"[QA] Error using structured data, falling back to text search: {e}")
            return None

        return Answer(
            text=answer_text,
            sources=[RetrievalResult(text=STRUCTURED_SOURCE_TEXT, score=STRUCTURED_SOURCE_SCORE)],
            method=RetrievalMethod.STRUCTURED,
            document_id=resolved.document_id,
        )

    def _build_strategies(self, resolved: ResolvedContent, text: str) -> List[RetrievalStrategy]:
        document = resolved.document
        if document is not None and document.is_chunked_externally and document.has_stored_embeddings:
            passages = document.chunks or self._chunk(text)
            return [
                StoredEmbeddingStrategy(self.embedding_retriever, document.id),
                KeywordStrategy(self.keyword_retriever, passages),
                UnscoredStrategy(passages),
            ]

        passages = self._chunk(text)
        return [
            FreshEmbeddingStrategy(self.embedding_retriever, passages),
            KeywordStrategy(self.keyword_retriever, passages),
            UnscoredStrategy(passages),
        ]

    def _chunk(self, text: str) -> List[Passage]:
        passages = self.chunker.chunk(text)
        logger.info(f"[QA] Created {len(passages)} chunks for text search")
        return passages

    @staticmethod
    def _demo_answer(document_id: Optional[str]) -> Answer:
        return Answer(
            text=DEMO_ANSWER,
            sources=[RetrievalResult(text=DEMO_SOURCE_TEXT, score=DEMO_SOURCE_SCORE)],
            method=RetrievalMethod.DEMO,
            document_id=document_id,
        )
