"""
K-means clustering with k-means++ seeding.

Seed -> Assign -> Update, repeated until the assignment vector stops
changing or the iteration cap is reached. Both exits produce a result; the
``converged`` flag tells them apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..exceptions import InvalidArgumentError
from ..models import Cluster, ClusteringMetadata, ClusteringResult
from ..utils.logging_config import get_logger
from .metrics import cluster_cohesion, estimate_num_clusters, silhouette_score
from .vector_math import Array2D, as_matrix, pairwise_euclidean, weighted_random_choice

logger = get_logger(__name__)


@dataclass
class KMeansResult:
    """Raw output of ``kmeans``."""

    labels: np.ndarray
    centroids: np.ndarray
    converged: bool
    n_iter: int


def kmeanspp_init(X: Array2D, K: int, rng: np.random.Generator) -> np.ndarray:
    """
    Return (K, d) initial centroids chosen by the k-means++ rule.

    The first centroid is a uniformly random point; each further one is drawn
    with probability proportional to the squared distance from each point to
    its nearest chosen centroid. When every point already coincides with a
    centroid the draw falls back to uniform.
    """
    n, d = X.shape
    centroids = np.empty((K, d), dtype=np.float64)
    centroids[0] = X[int(rng.integers(0, n))]

    min_sq = np.sum((X - centroids[0]) ** 2, axis=1)
    for k in range(1, K):
        total = float(min_sq.sum())
        if total == 0.0:
            idx = int(rng.integers(0, n))
        else:
            idx = weighted_random_choice(min_sq / total, rng)
        centroids[k] = X[idx]
        min_sq = np.minimum(min_sq, np.sum((X - centroids[k]) ** 2, axis=1))
    return centroids


def assign_to_centroids(X: Array2D, centroids: np.ndarray) -> np.ndarray:
    """
    Index of the nearest centroid (Euclidean) for every row of *X*.

    Ties go to the lowest centroid index.
    """
    dists = np.empty((X.shape[0], centroids.shape[0]), dtype=np.float64)
    for j, c in enumerate(centroids):
        diff = X - c
        dists[:, j] = np.einsum("nd,nd->n", diff, diff)
    return np.argmin(dists, axis=1)


def update_centroids(
    X: Array2D, labels: np.ndarray, K: int, rng: np.random.Generator
) -> np.ndarray:
    """Mean of each cluster's members; empty clusters get a random point."""
    n, d = X.shape
    centroids = np.empty((K, d), dtype=np.float64)
    for j in range(K):
        idx = np.where(labels == j)[0]
        if len(idx) > 0:
            centroids[j] = X[idx].mean(axis=0)
        else:
            centroids[j] = X[int(rng.integers(0, n))]
    return centroids


def kmeans(
    X: Array2D,
    K: int,
    *,
    max_iter: int = 100,
    rng: Optional[np.random.Generator] = None,
) -> KMeansResult:
    """
    Run k-means on the rows of *X*.

    Args:
        X: (n, d) data
        K: Number of clusters, 1 <= K <= n
        max_iter: Maximum assign/update rounds
        rng: Random generator used for seeding and empty-cluster reseeding

    Returns:
        ``KMeansResult`` with labels, centroids, convergence flag and the
        number of rounds run.

    Raises:
        InvalidArgumentError: If K is out of range or max_iter < 1
    """
    n = X.shape[0]
    if K < 1:
        raise InvalidArgumentError(f"K must be >= 1, got {K}")
    if K > n:
        raise InvalidArgumentError(f"K ({K}) cannot exceed number of samples ({n})")
    if max_iter < 1:
        raise InvalidArgumentError(f"max_iter must be >= 1, got {max_iter}")
    rng = rng if rng is not None else np.random.default_rng()

    centroids = kmeanspp_init(X, K, rng)
    labels = np.full(n, -1, dtype=int)
    converged = False
    n_iter = 0

    for _ in range(max_iter):
        n_iter += 1
        new_labels = assign_to_centroids(X, centroids)
        if np.array_equal(new_labels, labels):
            converged = True
            break
        labels = new_labels
        centroids = update_centroids(X, labels, K, rng)

    logger.debug(
        "k-means finished: K=%d, n=%d, iterations=%d, converged=%s",
        K,
        n,
        n_iter,
        converged,
    )
    return KMeansResult(labels=labels, centroids=centroids, converged=converged, n_iter=n_iter)


def kmeans_cluster(
    ids: Sequence[str],
    vectors,
    num_clusters: Optional[int] = None,
    *,
    max_iterations: int = 100,
    seed: Optional[int] = None,
) -> ClusteringResult:
    """
    Cluster embeddings with k-means and package the result.

    *num_clusters* defaults to ``estimate_num_clusters(n)`` and is capped at n.
    Only non-empty clusters are reported, so the cluster count is at most k.
    The silhouette score uses Euclidean distance.
    """
    X = as_matrix(vectors)
    n = X.shape[0]
    if n == 0:
        raise InvalidArgumentError("Cannot cluster an empty set of vectors")
    if len(ids) != n:
        raise InvalidArgumentError(f"Got {len(ids)} ids for {n} vectors")

    k = num_clusters if num_clusters is not None else estimate_num_clusters(n)
    k = min(k, n)

    result = kmeans(X, k, max_iter=max_iterations, rng=np.random.default_rng(seed))

    clusters: List[Cluster] = []
    for j in range(k):
        idx = np.where(result.labels == j)[0]
        if len(idx) == 0:
            continue
        members_X = X[idx]
        clusters.append(
            Cluster(
                id=f"cluster-{j}",
                members=[ids[i] for i in idx],
                centroid=members_X.mean(axis=0).tolist(),
                cohesion=cluster_cohesion(members_X),
            )
        )

    sil = silhouette_score(pairwise_euclidean(X), result.labels)

    return ClusteringResult(
        clusters=clusters,
        outliers=[],
        silhouette_score=sil,
        metadata=ClusteringMetadata(
            algorithm="kmeans",
            convergence=result.converged,
            iterations=result.n_iter,
        ),
    )
