"""
Vector math primitives shared by the clustering engines.

Distance and similarity functions, centroid computation and weighted
sampling. Inputs are anything ``np.asarray`` accepts (lists, tuples,
arrays); outputs are floats or float64 arrays.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from ..exceptions import DimensionMismatchError, InvalidArgumentError

Vector = Sequence[float]
Array2D = np.ndarray


def as_matrix(vectors) -> Array2D:
    """
    Stack *vectors* into a float64 array of shape (n, d).

    Raises:
        DimensionMismatchError: If the vectors do not all share one length
    """
    if isinstance(vectors, np.ndarray):
        if vectors.ndim != 2:
            raise InvalidArgumentError(
                f"Expected a 2D array of vectors, got shape {vectors.shape}"
            )
        return vectors.astype(np.float64, copy=False)

    rows = [np.asarray(v, dtype=np.float64) for v in vectors]
    if not rows:
        return np.zeros((0, 0), dtype=np.float64)
    d = rows[0].shape[0]
    for row in rows:
        if row.ndim != 1:
            raise InvalidArgumentError(f"Vectors must be 1D, got shape {row.shape}")
        if row.shape[0] != d:
            raise DimensionMismatchError(d, row.shape[0])
    return np.stack(rows, axis=0)


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatchError: If ``len(a) != len(b)``
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(va.shape[0], vb.shape[0])

    norm_a = float(np.dot(va, va))
    norm_b = float(np.dot(vb, vb))
    # sqrt of the product (not product of sqrts) so that sim(v, v) == 1.0 exactly
    magnitude = math.sqrt(norm_a * norm_b)
    if magnitude == 0.0:
        return 0.0
    sim = float(np.dot(va, vb)) / magnitude
    return max(-1.0, min(1.0, sim))


def euclidean_distance(a: Vector, b: Vector) -> float:
    """Euclidean distance. Equal lengths are the caller's responsibility."""
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(math.sqrt(np.dot(diff, diff)))


def centroid(vectors) -> np.ndarray:
    """Componentwise mean of *vectors*; empty input gives an empty vector."""
    X = as_matrix(vectors)
    if X.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    return X.mean(axis=0)


def normalize_rows(X: Array2D) -> Array2D:
    """L2-normalize rows; zero rows stay zero."""
    norms = np.linalg.norm(X, axis=1, keepdims=True)
    safe = np.where(norms == 0.0, 1.0, norms)
    return X / safe


def average_pairwise_similarity(vectors) -> float:
    """
    Mean cosine similarity over all unordered pairs.

    A single vector (or none) is defined to be perfectly cohesive: 1.0.
    """
    X = as_matrix(vectors)
    n = X.shape[0]
    if n <= 1:
        return 1.0
    U = normalize_rows(X)
    # sum_{i<j} u_i . u_j == (|sum u|^2 - sum |u_i|^2) / 2, in O(n * d)
    total = U.sum(axis=0)
    self_terms = float(np.einsum("nd,nd->", U, U))
    pair_sum = (float(np.dot(total, total)) - self_terms) / 2.0
    mean = pair_sum / (n * (n - 1) / 2.0)
    return max(-1.0, min(1.0, mean))


def pairwise_euclidean(vectors) -> Array2D:
    """
    Full (n, n) Euclidean distance matrix.

    O(n^2) memory; callers with large inputs should sample first.
    """
    X = as_matrix(vectors)
    n = X.shape[0]
    dist = np.zeros((n, n), dtype=np.float64)
    # Row by row on explicit differences: exact zeros for duplicates and
    # O(n * d) scratch memory instead of O(n^2 * d).
    for i in range(n):
        diff = X - X[i]
        dist[i] = np.sqrt(np.einsum("nd,nd->n", diff, diff))
    return dist


def weighted_random_choice(
    probabilities: Sequence[float],
    rng: Optional[np.random.Generator] = None,
) -> int:
    """
    Draw an index with the given probabilities by cumulative-sum sampling.

    If floating-point rounding leaves the cumulative sum short of the draw,
    the last index is returned.
    """
    if len(probabilities) == 0:
        raise InvalidArgumentError("Cannot sample from an empty distribution")
    rng = rng if rng is not None else np.random.default_rng()
    draw = rng.random()
    cumulative = 0.0
    for i, p in enumerate(probabilities):
        cumulative += p
        if draw < cumulative:
            return i
    return len(probabilities) - 1
