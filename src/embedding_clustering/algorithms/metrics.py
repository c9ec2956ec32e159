"""
Clustering quality metrics.

Silhouette score, cohesion and per-cluster similarity statistics, plus the
heuristic used to pick k when the caller does not.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ..models import ClusterStatistics
from .vector_math import Array2D, as_matrix, average_pairwise_similarity, normalize_rows

DEFAULT_MIN_CLUSTERS = 3
DEFAULT_MAX_CLUSTERS = 10


def estimate_num_clusters(
    n: int,
    min_clusters: int = DEFAULT_MIN_CLUSTERS,
    max_clusters: int = DEFAULT_MAX_CLUSTERS,
) -> int:
    """Rule-of-thumb k: ``clamp(floor(sqrt(n / 2)), min_clusters, max_clusters)``."""
    return min(max(int(math.floor(math.sqrt(n / 2))), min_clusters), max_clusters)


def cluster_cohesion(vectors) -> float:
    """
    Mean pairwise cosine similarity of a cluster's members, clamped to [0, 1].

    Singletons have cohesion 1.0.
    """
    return max(0.0, min(1.0, average_pairwise_similarity(vectors)))


def silhouette_score(dist: Array2D, labels: np.ndarray) -> float:
    """
    Mean silhouette score from a precomputed distance matrix.

    Points labelled ``-1`` (outliers) are ignored. For each remaining point,
    ``a`` is its mean distance to the other members of its cluster and ``b``
    the smallest mean distance to any other cluster; the point scores
    ``(b - a) / max(a, b)``. Points in singleton clusters score 0, and so
    does every point when only one cluster exists.

    Args:
        dist: (n, n) distance matrix
        labels: (n,) integer cluster labels

    Returns:
        Score in [-1, 1]
    """
    labels = np.asarray(labels)
    keep = labels >= 0
    if not keep.any():
        return 0.0
    dist = dist[np.ix_(keep, keep)]
    labels = labels[keep]
    n = len(labels)
    unique = np.unique(labels)
    if len(unique) == 1:
        return 0.0

    masks = {c: labels == c for c in unique}
    counts = {c: int(m.sum()) for c, m in masks.items()}

    sil = np.zeros(n, dtype=np.float64)
    for i in range(n):
        own = labels[i]
        if counts[own] <= 1:
            continue
        a = dist[i, masks[own]].sum() / (counts[own] - 1)
        b = min(dist[i, masks[c]].mean() for c in unique if c != own)
        denom = max(a, b)
        sil[i] = (b - a) / denom if denom > 0 else 0.0
    return float(np.mean(sil))


def cluster_statistics(vectors) -> ClusterStatistics:
    """Similarity statistics over all member pairs of one cluster."""
    X = as_matrix(vectors)
    n = X.shape[0]
    if n <= 1:
        return ClusterStatistics(
            size=n,
            avg_similarity=1.0,
            min_similarity=1.0,
            max_similarity=1.0,
            variance=0.0,
        )
    U = normalize_rows(X)
    sims = np.clip(U @ U.T, -1.0, 1.0)[np.triu_indices(n, k=1)]
    return ClusterStatistics(
        size=n,
        avg_similarity=float(sims.mean()),
        min_similarity=float(sims.min()),
        max_similarity=float(sims.max()),
        variance=float(sims.var()),
    )


def nearest_to_centroid(
    X: Array2D, count: int, center: Optional[np.ndarray] = None
) -> np.ndarray:
    """Row indices of the *count* points closest to *center* (default: the mean)."""
    X = as_matrix(X)
    if X.shape[0] == 0:
        return np.zeros(0, dtype=int)
    if center is None or len(center) != X.shape[1]:
        center = X.mean(axis=0)
    d2 = np.sum((X - center) ** 2, axis=1)
    # stable sort keeps input order among equidistant points
    return np.argsort(d2, kind="stable")[:count]
