# api/endpoints.py
"""
API endpoints for the document QA service.

No authentication: access control is out of scope for this service and must
be provided by the deployment in front of it.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile

from api.schemas import DocumentSummary, HealthResponse, QuestionRequestBody, QuestionResponse, Source
from config import settings
from core.domain import (
    DuplicateDocumentError,
    ErrorCode,
    InputError,
    NotFoundError,
    QuestionRequest,
)
from core.interfaces import IDocumentStore, ILLMService
from services.factory import (
    get_document_store,
    get_ingestion_service,
    get_llm_service,
    get_retrieval_orchestrator,
)
from services.ingestion_service import DocumentIngestionService
from services.rag_service import RetrievalOrchestrator

logger = logging.getLogger(settings.LOGGER_NAME)

router = APIRouter()


def _http_error(status_code: int, message: str, error_code: Optional[ErrorCode] = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"message": message, "error_code": error_code.value if error_code else None},
    )


# ---------- Question ----------
@router.post("/documents/question", response_model=QuestionResponse, response_model_by_alias=True)
async def answer_question(
    body: QuestionRequestBody,
    orchestrator: RetrievalOrchestrator = Depends(get_retrieval_orchestrator),
) -> QuestionResponse:
    question = body.question or ""
    if len(question) > settings.QUESTION_MAX_LENGTH:
        raise _http_error(
            400,
            f"Question must be at most {settings.QUESTION_MAX_LENGTH} characters",
            ErrorCode.INVALID_INPUT,
        )

    request = QuestionRequest(
        question=question,
        document_id=body.document_id,
        inline_content=body.document_content,
        document_name=body.document_name,
    )

    try:
        answer = await orchestrator.answer_question(request)
    except InputError as e:
        raise _http_error(400, e.message, e.error_code)
    except NotFoundError as e:
        raise _http_error(404, "Document not found", e.error_code)
    except Exception as e:
        logger.error(f"[API] Error in document question API: {e}", exc_info=True)
        raise _http_error(500, "Internal server error")

    return QuestionResponse(
        answer=answer.text,
        sources=[Source(text=s.text, score=s.score) for s in answer.sources],
        method=answer.method,
        document_id=answer.document_id,
    )


# ---------- Ingestion ----------
@router.post("/documents/upload", response_model=DocumentSummary)
async def upload_document(
    file: UploadFile = File(...),
    chunk: bool = True,
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
) -> DocumentSummary:
    data = await file.read()
    try:
        document = await ingestion.ingest_upload(file.filename or "Document", data, chunk=chunk)
    except InputError as e:
        raise _http_error(400, e.message, e.error_code)
    except DuplicateDocumentError as e:
        raise _http_error(409, e.message, e.error_code)
    except Exception as e:
        logger.error(f"[API] Upload of '{file.filename}' failed: {e}", exc_info=True)
        raise _http_error(500, "Internal server error")

    return DocumentSummary.from_document(document)


@router.post("/documents", response_model=DocumentSummary)
async def ingest_document_record(
    payload: Dict[str, Any] = Body(...),
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
) -> DocumentSummary:
    try:
        document = await ingestion.ingest_payload(payload)
    except InputError as e:
        raise _http_error(400, e.message, e.error_code)
    except Exception as e:
        logger.error(f"[API] Storing document record failed: {e}", exc_info=True)
        raise _http_error(500, "Internal server error")

    return DocumentSummary.from_document(document)


@router.get("/documents/{document_id}", response_model=DocumentSummary)
async def get_document(
    document_id: str,
    document_store: IDocumentStore = Depends(get_document_store),
) -> DocumentSummary:
    document = await document_store.get_document(document_id)
    if document is None:
        raise _http_error(404, "Document not found", ErrorCode.DOCUMENT_NOT_FOUND)
    return DocumentSummary.from_document(document)


# ---------- Health Check ----------
@router.get("/health", response_model=HealthResponse)
async def health_check(llm_service: Optional[ILLMService] = Depends(get_llm_service)) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        timestamp=datetime.utcnow().isoformat() + "Z",
        generation_configured=llm_service is not None,
        embedding_provider=settings.EMBEDDING_PROVIDER,
    )
