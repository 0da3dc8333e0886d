# api/schemas.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.domain import Document, RetrievalMethod


class QuestionRequestBody(BaseModel):
    """Accepts both camelCase (documentId) and snake_case (document_id) keys"""
    model_config = ConfigDict(populate_by_name=True)

    question: Optional[str] = None
    document_id: Optional[str] = Field(None, alias="documentId")
    document_content: Optional[str] = Field(None, alias="documentContent")
    document_name: Optional[str] = Field(None, alias="documentName")


class Source(BaseModel):
    text: str
    score: float


class QuestionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    sources: List[Source]
    method: RetrievalMethod
    document_id: Optional[str] = Field(None, alias="documentId")


class DocumentSummary(BaseModel):
    id: str
    filename: str
    chunked: bool
    chunks: int
    has_embeddings: bool
    has_extracted_text: bool
    has_structured_data: bool

    @classmethod
    def from_document(cls, document: Document) -> "DocumentSummary":
        return cls(
            id=document.id,
            filename=document.filename,
            chunked=document.is_chunked_externally,
            chunks=len(document.chunks),
            has_embeddings=document.has_stored_embeddings,
            has_extracted_text=bool(document.extracted_text),
            has_structured_data=bool(document.structured_facts),
        )


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    generation_configured: bool
    embedding_provider: str
