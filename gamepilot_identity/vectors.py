"""
Vector Utilities
================

Small helpers for fixed-length feature vectors and cosine similarity.

Cosine similarity is total over its inputs:
    - zero-magnitude vectors score 0
    - shorter vectors are zero-padded to the longer length
    - non-finite components score 0 (logged, never raised)
"""

import logging
from typing import Iterable, Mapping, Sequence, Union

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _sk_cosine

logger = logging.getLogger(__name__)

VectorLike = Union[Sequence[float], np.ndarray]


def pad_vector(vector: VectorLike, length: int) -> np.ndarray:
    """Zero-pad or truncate a vector to a fixed length."""
    arr = np.asarray(vector, dtype=float).ravel()
    out = np.zeros(length)
    n = min(len(arr), length)
    out[:n] = arr[:n]
    return out


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1]; 0 when either vector has zero magnitude
    """
    a_arr = np.asarray(a, dtype=float).ravel()
    b_arr = np.asarray(b, dtype=float).ravel()

    if a_arr.size == 0 or b_arr.size == 0:
        return 0.0

    if not (np.all(np.isfinite(a_arr)) and np.all(np.isfinite(b_arr))):
        logger.debug("Non-finite vector component, similarity treated as 0")
        return 0.0

    if a_arr.size != b_arr.size:
        length = max(a_arr.size, b_arr.size)
        a_arr = pad_vector(a_arr, length)
        b_arr = pad_vector(b_arr, length)

    if not np.any(a_arr) or not np.any(b_arr):
        return 0.0

    sim = _sk_cosine(a_arr.reshape(1, -1), b_arr.reshape(1, -1))[0, 0]
    return float(np.clip(sim, -1.0, 1.0))


def unit_similarity(a: VectorLike, b: VectorLike) -> float:
    """Cosine similarity clipped to [0, 1] for use as a score."""
    return max(0.0, cosine_similarity(a, b))


def build_vector(weights: Mapping[str, float], vocabulary: Iterable[str]) -> np.ndarray:
    """
    Build a fixed-length vector from a sparse weight mapping.

    Keys missing from the vocabulary are ignored.
    """
    vocab = list(vocabulary)
    index = {key: i for i, key in enumerate(vocab)}
    vec = np.zeros(len(vocab))
    for key, weight in weights.items():
        idx = index.get(key)
        if idx is not None:
            vec[idx] = float(weight)
    return vec


def normalize_max(vector: VectorLike) -> np.ndarray:
    """Scale a non-negative vector so its largest component is 1."""
    arr = np.asarray(vector, dtype=float)
    peak = float(np.max(arr)) if arr.size else 0.0
    if peak <= 0:
        return np.zeros_like(arr)
    return arr / peak
