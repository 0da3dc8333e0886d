# services/content.py
"""Content sniffing and fail-soft binary text extraction"""
import asyncio
import logging
from typing import Dict, Optional, Union

from config import settings
from core.domain import ContentClassification, ContentKind
from core.interfaces import IBinaryExtractor
from utils.common import to_binary_bytes

logger = logging.getLogger(settings.LOGGER_NAME)

# Placeholders returned instead of raising, so later stages always get text
PDF_EXTRACTION_ERROR = "Error extracting text from PDF document."
DOCX_EXTRACTION_ERROR = "Failed to extract text from this document format."
UNSUPPORTED_BINARY = "Unsupported binary format"
BINARY_PROCESSING_ERROR = "Error processing binary content"

_FAILURE_TEXT: Dict[ContentKind, str] = {
    ContentKind.PDF: PDF_EXTRACTION_ERROR,
    ContentKind.DOCX: DOCX_EXTRACTION_ERROR,
}

_PLAIN_TEXT = ContentClassification(kind=ContentKind.TEXT, is_binary=False)

# Signatures checked as bytes; str payloads are binary strings (latin-1)
_PDF_PREFIX = b"%PDF"
_PDF_MARKER = b"%PDF-"
_ZIP_PREFIX = b"PK"
_DOCX_MARKERS = (b"[Content_Types]", b"word/document.xml")


def classify_content(content: Union[str, bytes, None]) -> ContentClassification:
    """
    Sniff a payload for a known binary document signature.

    Never raises: empty, None or non str/bytes input is plain text.
    """
    if not content or not isinstance(content, (str, bytes, bytearray)):
        return _PLAIN_TEXT

    data = to_binary_bytes(content)

    if data.startswith(_PDF_PREFIX) or _PDF_MARKER in data:
        return ContentClassification(kind=ContentKind.PDF, is_binary=True)

    if data.startswith(_ZIP_PREFIX) or any(marker in data for marker in _DOCX_MARKERS):
        return ContentClassification(kind=ContentKind.DOCX, is_binary=True)

    return _PLAIN_TEXT


class TextExtractor:
    """
    Converts classified binary payloads to text via format-specific extractors.

    Fails soft: every failure becomes a fixed human-readable placeholder.
    """

    def __init__(self, extractors: Dict[ContentKind, IBinaryExtractor]):
        self._extractors = extractors

    async def extract(self, content: Union[str, bytes, None], kind: Optional[ContentKind]) -> str:
        if not content:
            return ""

        try:
            data = to_binary_bytes(content)
            extractor = self._extractors.get(kind) if kind else None
            if extractor is None:
                logger.warning(f"[EXTRACT] No extractor for kind '{kind}'")
                return UNSUPPORTED_BINARY

            logger.info(f"[EXTRACT] Processing {kind.value} content, buffer size: {len(data)}")
            try:
                text = await asyncio.to_thread(extractor.extract_text, data)
            except Exception as e:
                logger.error(f"[EXTRACT] {kind.value} extraction failed: {e}")
                return _FAILURE_TEXT.get(kind, BINARY_PROCESSING_ERROR)

            logger.info(f"[EXTRACT] {kind.value} extraction completed, text length: {len(text)}")
            return text
        except Exception as e:
            logger.error(f"[EXTRACT] Unexpected error processing binary content: {e}", exc_info=True)
            return BINARY_PROCESSING_ERROR
