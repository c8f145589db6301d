"""Unit tests for cosine similarity."""

import math

import numpy as np
import pytest

from jdlens.core.errors import DimensionMismatchError
from jdlens.nlp.vector_math import cosine_similarity


@pytest.mark.unit
class TestCosineSimilarity:

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_symmetric(self):
        rng = np.random.default_rng(7)
        a, b = rng.normal(size=16), rng.normal(size=16)
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_float32_blobs(self):
        a = np.array([0.6, 0.8], dtype=np.float32)
        assert cosine_similarity(a, a) == pytest.approx(1.0, abs=1e-6)

    def test_dimension_mismatch_raises(self):
        with pytest.raises(DimensionMismatchError) as exc:
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
        assert exc.value.left == 2
        assert exc.value.right == 3

    def test_dimension_mismatch_is_a_value_error(self):
        with pytest.raises(ValueError):
            cosine_similarity([1.0], [1.0, 0.0])

    def test_zero_vector_is_nan(self):
        result = cosine_similarity([0.0, 0.0], [1.0, 0.0])
        assert math.isnan(result)
        assert not result >= 0.8
