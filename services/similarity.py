# services/similarity.py
import logging
from typing import List, Sequence

import numpy as np

from config import settings
from core.domain import Passage, RetrievalResult

logger = logging.getLogger(settings.LOGGER_NAME)


def cosine_similarity(a, b) -> float:
    """
    Cosine of the angle between two vectors.

    Returns 0.0 instead of raising for anything that is not a pair of
    equal-length, non-empty numeric sequences with non-zero magnitude.
    """
    if not isinstance(a, (list, tuple, np.ndarray)) or not isinstance(b, (list, tuple, np.ndarray)):
        return 0.0
    if len(a) == 0 or len(a) != len(b):
        return 0.0

    try:
        va = np.asarray(a, dtype=np.float64)
        vb = np.asarray(b, dtype=np.float64)
    except (TypeError, ValueError):
        return 0.0
    if va.ndim != 1 or vb.ndim != 1:
        return 0.0

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0 or not np.isfinite(norm_a) or not np.isfinite(norm_b):
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


class SimilarityRanker:
    """Orders passages by cosine similarity to a question embedding."""

    def rank(self, question_embedding: Sequence[float], passages: List[Passage]) -> List[RetrievalResult]:
        scored = [
            RetrievalResult(
                text=p.text,
                score=cosine_similarity(question_embedding, p.embedding) if p.embedding is not None else 0.0,
            )
            for p in passages
        ]
        # sorted() is stable, ties keep document order
        ranked = sorted(scored, key=lambda r: r.score, reverse=True)
        if ranked:
            logger.debug(f"[RANK] {len(ranked)} passages, top score {ranked[0].score:.3f}")
        return ranked
