# jdlens/nlp/vector_math.py
from typing import Sequence, Union

import numpy as np

from jdlens.core.errors import DimensionMismatchError

Vector = Union[np.ndarray, Sequence[float]]


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Dot product over the product of norms.

    Raises DimensionMismatchError when the lengths differ. A zero vector
    yields NaN, which fails every threshold comparison downstream.
    """
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(a.shape[0], b.shape[0])

    with np.errstate(invalid="ignore", divide="ignore"):
        return float(np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b)))
