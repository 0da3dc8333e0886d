# services/keyword_retriever.py
"""Crude keyword relevance, used when no embedding route is available."""
import logging
import re
from typing import List, Optional

from config import settings
from core.domain import Passage, RetrievalResult

logger = logging.getLogger(settings.LOGGER_NAME)

STOP_WORDS = frozenset(
    "a an the and or but in on at to for with about is are was were".split()
)
NEUTRAL_SCORE = 0.5

_NON_WORD = re.compile(r"[^\w\s]")


def extract_keywords(question: str) -> List[str]:
    """Lowercased content words of the question, in order, duplicates kept."""
    if not question:
        return []
    cleaned = _NON_WORD.sub("", question.lower())
    return [w for w in cleaned.split() if len(w) > 2 and w not in STOP_WORDS]


class KeywordFallbackRetriever:
    """
    Scores passages by whole-word keyword occurrences.

    The raw score (total occurrences / keyword count) is rescaled into
    [score_min, score_max] so keyword results never outrank a confident
    embedding match.
    """

    def __init__(
        self,
        score_min: Optional[float] = None,
        score_max: Optional[float] = None,
        divisor: Optional[float] = None,
    ):
        self.score_min = settings.KEYWORD_SCORE_MIN if score_min is None else score_min
        self.score_max = settings.KEYWORD_SCORE_MAX if score_max is None else score_max
        self.divisor = settings.KEYWORD_SCORE_DIVISOR if divisor is None else divisor

    def retrieve(self, question: str, passages: List[Passage], top_k: int = 5) -> List[RetrievalResult]:
        if not passages or not question or not question.strip():
            return []

        keywords = extract_keywords(question)
        if not keywords:
            logger.info("[KEYWORD] No keywords in question, returning leading passages")
            return [RetrievalResult(text=p.text, score=NEUTRAL_SCORE) for p in passages[:top_k]]

        patterns = [re.compile(rf"\b{re.escape(k)}\b", re.IGNORECASE) for k in keywords]

        raw_scores = []
        for p in passages:
            hits = sum(len(pattern.findall(p.text)) for pattern in patterns)
            raw_scores.append((p.text, hits / len(keywords)))

        raw_scores.sort(key=lambda item: item[1], reverse=True)

        results = [
            RetrievalResult(text=text, score=self._rescale(raw))
            for text, raw in raw_scores[:top_k]
        ]
        logger.info(
            f"[KEYWORD] {len(keywords)} keywords over {len(passages)} passages, "
            f"returning {len(results)}"
        )
        return results

    def _rescale(self, raw: float) -> float:
        return min(self.score_max, max(self.score_min, raw / self.divisor))
