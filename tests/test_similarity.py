import math

import numpy as np
import pytest

from core.domain import Passage
from services.similarity import SimilarityRanker, cosine_similarity


def test_orthogonal_vectors_score_zero():
    assert cosine_similarity([1, 0], [0, 1]) == 0


def test_identical_vectors_score_one():
    assert math.isclose(cosine_similarity([1, 1], [1, 1]), 1.0)


def test_opposite_vectors_score_minus_one():
    assert math.isclose(cosine_similarity([1, 2], [-1, -2]), -1.0)


def test_accepts_numpy_arrays():
    assert math.isclose(cosine_similarity(np.array([3.0, 4.0]), [3, 4]), 1.0)


@pytest.mark.parametrize(
    "a, b",
    [
        ([], [1]),
        ([], []),
        ([1, 2], [1, 2, 3]),
        ([0, 0], [1, 1]),
        ("ab", "ab"),
        (None, [1]),
        ([1, "x"], [1, 2]),
        ([[1], [2]], [[1], [2]]),
        ([[1, 2], [3, 4]], [[1, 2], [3, 4]]),
    ],
)
def test_invalid_vectors_score_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


def test_rank_orders_descending():
    passages = [
        Passage(text="far", embedding=[0.0, 1.0]),
        Passage(text="near", embedding=[1.0, 0.1]),
        Passage(text="middle", embedding=[1.0, 1.0]),
    ]

    ranked = SimilarityRanker().rank([1.0, 0.0], passages)

    assert [r.text for r in ranked] == ["near", "middle", "far"]
    assert ranked[0].score > ranked[1].score > ranked[2].score


def test_rank_is_stable_on_ties_and_scores_missing_embeddings_zero():
    passages = [
        Passage(text="first", embedding=[1.0, 0.0]),
        Passage(text="no embedding"),
        Passage(text="second", embedding=[2.0, 0.0]),
    ]

    ranked = SimilarityRanker().rank([1.0, 0.0], passages)

    assert [r.text for r in ranked] == ["first", "second", "no embedding"]
    assert ranked[-1].score == 0.0
