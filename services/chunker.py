# services/chunker.py
"""Boundary-aware, overlapping text segmentation for retrieval."""
import logging
import math
import re
from typing import List, Optional

from config import settings
from core.domain import Passage

logger = logging.getLogger(settings.LOGGER_NAME)

DEFAULT_CHUNK_SIZE = getattr(settings, "CHUNK_SIZE", 1000)
DEFAULT_CHUNK_OVERLAP = getattr(settings, "CHUNK_OVERLAP", 200)
DEFAULT_BREAK_LOOKAHEAD = getattr(settings, "CHUNK_BREAK_LOOKAHEAD", 100)

# Sentence-terminal punctuation followed by whitespace
_SENTENCE_BREAK = re.compile(r"[.!?]\s")

FALLBACK_CHUNK_TEXT = "Error processing document content"


class Chunker:
    """
    Walks text left to right producing windows of at most `max_chunk_size`
    characters, extended up to `break_lookahead` characters so a window ends
    after a sentence instead of mid-sentence.

    Consecutive passages overlap by up to `overlap` characters. Window starts
    strictly increase, so segmentation always terminates.
    """

    def __init__(
        self,
        max_chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
        break_lookahead: int = DEFAULT_BREAK_LOOKAHEAD,
    ) -> None:
        self.max_chunk_size = max_chunk_size
        self.overlap = overlap
        self.break_lookahead = break_lookahead

    def chunk(
        self,
        text,
        max_chunk_size: Optional[int] = None,
        overlap: Optional[int] = None,
    ) -> List[Passage]:
        """Split `text` into passages. Empty or non-string input yields []."""
        if not text or not isinstance(text, str):
            logger.warning(f"[CHUNK] Invalid text provided for chunking: {type(text).__name__}")
            return []

        size, step_overlap = self._normalize_params(
            max_chunk_size if max_chunk_size is not None else self.max_chunk_size,
            overlap if overlap is not None else self.overlap,
        )

        try:
            passages = self._chunk_with_breaks(text, size, step_overlap)
        except Exception as e:
            logger.error(f"[CHUNK] Catastrophic error in chunking: {e}", exc_info=True)
            passages = self._fallback_slices(text, size)

        logger.debug(f"[CHUNK] {len(text)} chars -> {len(passages)} passages")
        return passages

    # ============ SEGMENTATION ============

    def _chunk_with_breaks(self, text: str, size: int, overlap: int) -> List[Passage]:
        length = len(text)
        max_iterations = math.ceil(length / (size - overlap)) + 10

        passages: List[Passage] = []
        start = 0
        iterations = 0

        while start < length:
            if iterations >= max_iterations:
                logger.warning(
                    f"[CHUNK] Terminated after {max_iterations} iterations, "
                    f"slicing remaining {length - start} chars"
                )
                passages.extend(_fixed_slices(text, size, start))
                break
            iterations += 1

            end = min(start + size, length)
            if end < length:
                end = self._snap_to_sentence_end(text, start, end, size)

            passages.append(Passage(text=text[start:end], offset=start))
            if end >= length:
                break

            next_start = end - overlap
            if next_start <= start:
                next_start = end
            start = next_start

        return passages

    def _snap_to_sentence_end(self, text: str, start: int, end: int, size: int) -> int:
        """Move `end` just past the first sentence break within the lookahead."""
        # Start one char early so a break straddling the raw end is found
        search_from = max(start, end - 1)
        window = text[search_from:min(end + self.break_lookahead, len(text))]
        match = _SENTENCE_BREAK.search(window)
        if match is None:
            return end

        candidate = search_from + match.end()
        if candidate - start <= size + self.break_lookahead:
            return candidate
        return end

    def _fallback_slices(self, text: str, size: int) -> List[Passage]:
        try:
            return _fixed_slices(text, size, 0)
        except Exception as e:
            logger.error(f"[CHUNK] Even fallback chunking failed: {e}")
            return [Passage(text=FALLBACK_CHUNK_TEXT, offset=0)]

    @staticmethod
    def _normalize_params(size: int, overlap: int):
        size = max(1, int(size))
        # Overlap must leave a positive step
        overlap = max(0, min(int(overlap), size - 1))
        return size, overlap


def _fixed_slices(text: str, size: int, offset: int) -> List[Passage]:
    """Non-overlapping fixed-size slices of text[offset:]."""
    return [
        Passage(text=text[i:i + size], offset=i)
        for i in range(offset, len(text), size)
    ]
