# infrastructure/text_extractors.py
"""Concrete binary extractors: PDF via PyMuPDF, DOCX via mammoth."""
import io
from typing import List

import fitz  # PyMuPDF
import mammoth

from core.domain import ExtractionFailure
from core.interfaces import IBinaryExtractor


class PyMuPDFTextExtractor(IBinaryExtractor):
    """
    Extracts the text layer of every page, in page order.

    Pages are separated by a blank line so sentence detection in the chunker
    does not glue the last line of a page to the first line of the next.
    """

    def extract_text(self, data: bytes) -> str:
        pages: List[str] = []
        try:
            with fitz.open(stream=data, filetype="pdf") as doc:
                for page in doc:
                    pages.append(page.get_text("text"))
        except Exception as e:
            raise ExtractionFailure(f"Could not read PDF: {e}") from e
        return "\n\n".join(p.strip() for p in pages if p.strip())


class MammothDocxExtractor(IBinaryExtractor):
    """Raw text of a .docx file (paragraphs separated by blank lines)."""

    def extract_text(self, data: bytes) -> str:
        try:
            result = mammoth.extract_raw_text(io.BytesIO(data))
        except Exception as e:
            raise ExtractionFailure(f"Could not read DOCX: {e}") from e
        return result.value
