"""
Unit tests for vector helpers.
"""

import numpy as np
import pytest

from gamepilot_identity.vectors import (
    build_vector,
    cosine_similarity,
    normalize_max,
    pad_vector,
    unit_similarity,
)


class TestCosineSimilarity:
    """cosine_similarity edge cases"""

    def test_self_similarity_is_one(self):
        """A non-zero vector is perfectly similar to itself"""
        a = [0.2, 0.4, 0.9, 0.0]
        assert cosine_similarity(a, a) == pytest.approx(1.0)

    def test_zero_vector_scores_zero(self):
        """Zero magnitude is a defined edge case, not an error"""
        assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0
        assert cosine_similarity([1, 2, 3], [0, 0, 0]) == 0.0

    def test_opposite_vectors(self):
        assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)

    def test_shorter_vector_is_zero_padded(self):
        """[1, 1] is compared as [1, 1, 0]"""
        expected = 2 / (np.sqrt(2) * np.sqrt(3))
        assert cosine_similarity([1, 1], [1, 1, 1]) == pytest.approx(expected)

    def test_non_finite_scores_zero(self):
        assert cosine_similarity([np.nan, 1.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([np.inf, 1.0], [1.0, 1.0]) == 0.0

    def test_empty_vectors(self):
        assert cosine_similarity([], [1.0]) == 0.0

    def test_unit_similarity_clips_negative(self):
        assert unit_similarity([1, 0], [-1, 0]) == 0.0


class TestVectorBuilding:
    """Fixed-length vector construction"""

    def test_build_vector_ignores_unknown_keys(self):
        vec = build_vector({"a": 0.5, "c": 1.0, "zzz": 9.0}, ["a", "b", "c"])
        assert list(vec) == [0.5, 0.0, 1.0]

    def test_pad_and_truncate(self):
        assert list(pad_vector([1, 2], 4)) == [1, 2, 0, 0]
        assert list(pad_vector([1, 2, 3], 2)) == [1, 2]

    def test_normalize_max(self):
        assert list(normalize_max([1.0, 2.0, 4.0])) == [0.25, 0.5, 1.0]
        assert list(normalize_max([0.0, 0.0])) == [0.0, 0.0]
