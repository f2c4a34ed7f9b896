"""Cosine similarity between embedding vectors."""

from typing import Sequence

import numpy as np

from smart_search.services.errors import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Compute the cosine similarity of two equal-length vectors.

    :param a: First vector
    :param b: Second vector
    :returns: Similarity in [-1, 1], or 0.0 if either vector has zero magnitude
    :raises DimensionMismatchError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    left = np.asarray(a, dtype=np.float64)
    right = np.asarray(b, dtype=np.float64)

    # sqrt of the product keeps cosine(v, v) exactly 1.0
    magnitude = float(np.sqrt(np.dot(left, left) * np.dot(right, right)))
    if magnitude == 0.0:
        return 0.0

    return float(np.dot(left, right) / magnitude)
