# core/domain.py
"""Domain models, enumerations and errors for the document QA pipeline."""
from enum import Enum

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

# ============= Enums =============

class ErrorCode(str, Enum):
    """Error codes for user-facing and logged failures."""
    INVALID_INPUT = "INVALID_INPUT"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    DUPLICATE_FILE = "DUPLICATE_FILE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    EMBEDDING_FAILED = "EMBEDDING_FAILED"
    STRUCTURED_QUERY_FAILED = "STRUCTURED_QUERY_FAILED"
    GENERATION_FAILED = "GENERATION_FAILED"
    CHUNKING_FAILED = "CHUNKING_FAILED"
    RETRIEVAL_FAILED = "RETRIEVAL_FAILED"


class ContentKind(str, Enum):
    """Tagged variant produced by the content classifier."""
    TEXT = "text"
    PDF = "pdf"
    DOCX = "docx"


class RetrievalMethod(str, Enum):
    """How the passages behind an answer were obtained."""
    STRUCTURED = "structured_data"
    STORED_EMBEDDING = "stored_embeddings"
    FRESH_EMBEDDING = "fresh_embeddings"
    KEYWORD = "keyword"
    UNSCORED = "unscored"
    DEMO = "demo"


class PipelineState(str, Enum):
    """Question answering stages."""
    RESOLVE_CONTENT = "resolve_content"
    MAYBE_EXTRACT_BINARY = "maybe_extract_binary"
    TRY_STRUCTURED = "try_structured"
    RETRIEVE = "retrieve"
    COMPOSE = "compose"
    DONE = "done"


# ============= Errors =============

class RAGError(Exception):
    """Base error carrying a machine-readable code."""

    error_code: ErrorCode = ErrorCode.RETRIEVAL_FAILED

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging
        return f"[{self.error_code.value}] {self.message}"


class InputError(RAGError):
    """No document reference/content, or an unusable question."""
    error_code = ErrorCode.INVALID_INPUT


class NotFoundError(RAGError):
    """Document id could not be resolved."""
    error_code = ErrorCode.DOCUMENT_NOT_FOUND


class DuplicateDocumentError(RAGError):
    error_code = ErrorCode.DUPLICATE_FILE


class ExtractionFailure(RAGError):
    error_code = ErrorCode.EXTRACTION_FAILED


class EmbeddingFailure(RAGError):
    error_code = ErrorCode.EMBEDDING_FAILED


class StructuredQueryFailure(RAGError):
    error_code = ErrorCode.STRUCTURED_QUERY_FAILED


class GenerationFailure(RAGError):
    error_code = ErrorCode.GENERATION_FAILED


class ChunkingFailure(RAGError):
    error_code = ErrorCode.CHUNKING_FAILED


# ============= Result =============

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """Outcome of a fallible stage: either a value or the error that stopped it."""
    ok: bool
    value: Optional[T] = None
    error: Optional[E] = None

    @staticmethod
    def success(v: T) -> "Result[T, E]":
        return Result(ok=True, value=v)

    @staticmethod
    def failure(e: E) -> "Result[T, E]":
        return Result(ok=False, error=e)


# ============= Domain Models =============

@dataclass(frozen=True)
class Passage:
    """A bounded, possibly overlapping substring of a document."""
    text: str
    offset: Optional[int] = None  # start hint, not guaranteed exact
    embedding: Optional[List[float]] = None


@dataclass(frozen=True)
class RetrievalResult:
    """Passage text with a method-specific relevance score."""
    text: str
    score: float


@dataclass
class Document:
    """Canonical document record consumed by the QA pipeline"""
    id: str
    filename: str = "Document"
    raw_content: Union[str, bytes, None] = None
    extracted_text: Optional[str] = None
    is_chunked_externally: bool = False
    has_stored_embeddings: bool = False
    structured_facts: Optional[Dict[str, Any]] = None
    chunks: List[Passage] = field(default_factory=list)
    file_hash: Optional[str] = None


@dataclass
class SimilarChunk:
    """Stored chunk returned by vector search"""
    chunk: Passage
    similarity: float
    chunk_id: Optional[str] = None


@dataclass(frozen=True)
class ContentClassification:
    kind: ContentKind
    is_binary: bool


@dataclass
class QuestionRequest:
    question: str
    document_id: Optional[str] = None
    inline_content: Optional[str] = None
    document_name: Optional[str] = None


@dataclass
class Answer:
    text: str
    sources: List[RetrievalResult]
    method: RetrievalMethod
    document_id: Optional[str] = None
