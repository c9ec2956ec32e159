"""
DBSCAN density-based clustering.

Neighbour queries are an exhaustive Euclidean scan per point, so the cost
is O(n^2) distance evaluations. That is fine for the few thousand
embeddings a single request carries; larger inputs need an index.
"""

from __future__ import annotations

from collections import deque
from typing import List, Optional, Sequence

import numpy as np

from ..exceptions import InvalidArgumentError
from ..models import Cluster, ClusteringMetadata, ClusteringResult
from ..utils.logging_config import get_logger
from .metrics import cluster_cohesion, silhouette_score
from .vector_math import Array2D, as_matrix, pairwise_euclidean

logger = get_logger(__name__)

DEFAULT_EPS = 0.3
DEFAULT_MIN_PTS = 3

NOISE = -1
UNVISITED = -2


def eps_from_similarity(min_similarity: Optional[float]) -> float:
    """``1 - min_similarity`` when given, otherwise ``DEFAULT_EPS``."""
    if min_similarity is None:
        return DEFAULT_EPS
    return 1.0 - min_similarity


def region_query(X: Array2D, idx: int, eps: float) -> List[int]:
    """Indices of all points within *eps* of point *idx*, excluding itself."""
    diff = X - X[idx]
    dist = np.sqrt(np.einsum("nd,nd->n", diff, diff))
    neighbors = np.where(dist <= eps)[0]
    return [int(j) for j in neighbors if j != idx]


def dbscan(X: Array2D, eps: float = DEFAULT_EPS, min_pts: int = DEFAULT_MIN_PTS) -> np.ndarray:
    """
    Label every row of *X* with a cluster index or ``NOISE``.

    A point with at least *min_pts* neighbours is a core point. Clusters grow
    from core points by breadth-first expansion; border points are claimed
    by the first cluster that reaches them, even if an earlier scan marked
    them as noise. Points scanned in input order, so the labelling is
    deterministic for a fixed ordering.
    """
    if eps < 0:
        raise InvalidArgumentError(f"eps must be >= 0, got {eps}")
    if min_pts < 1:
        raise InvalidArgumentError(f"min_pts must be >= 1, got {min_pts}")

    n = X.shape[0]
    labels = np.full(n, UNVISITED, dtype=int)
    cluster_idx = 0

    for i in range(n):
        if labels[i] != UNVISITED:
            continue
        neighbors = region_query(X, i, eps)
        if len(neighbors) < min_pts:
            labels[i] = NOISE
            continue

        labels[i] = cluster_idx
        queue = deque(neighbors)
        while queue:
            j = queue.popleft()
            if labels[j] == NOISE:
                labels[j] = cluster_idx
            if labels[j] != UNVISITED:
                continue
            labels[j] = cluster_idx
            j_neighbors = region_query(X, j, eps)
            if len(j_neighbors) >= min_pts:
                queue.extend(j_neighbors)
        cluster_idx += 1

    logger.debug(
        "DBSCAN finished: n=%d, eps=%.4f, min_pts=%d, clusters=%d, noise=%d",
        n,
        eps,
        min_pts,
        cluster_idx,
        int(np.sum(labels == NOISE)),
    )
    return labels


def dbscan_cluster(
    ids: Sequence[str],
    vectors,
    *,
    eps: float = DEFAULT_EPS,
    min_pts: int = DEFAULT_MIN_PTS,
) -> ClusteringResult:
    """
    Cluster embeddings with DBSCAN and package the result.

    Unreachable points are returned as outliers. The silhouette score is
    computed over clustered points only and is ``None`` when nothing
    clustered.
    """
    X = as_matrix(vectors)
    n = X.shape[0]
    if n == 0:
        raise InvalidArgumentError("Cannot cluster an empty set of vectors")
    if len(ids) != n:
        raise InvalidArgumentError(f"Got {len(ids)} ids for {n} vectors")

    labels = dbscan(X, eps=eps, min_pts=min_pts)

    clusters: List[Cluster] = []
    for c in range(int(labels.max()) + 1):
        idx = np.where(labels == c)[0]
        members_X = X[idx]
        clusters.append(
            Cluster(
                id=f"cluster-{c}",
                members=[ids[i] for i in idx],
                centroid=members_X.mean(axis=0).tolist(),
                cohesion=cluster_cohesion(members_X),
            )
        )
    outliers = [ids[i] for i in np.where(labels == NOISE)[0]]

    sil = silhouette_score(pairwise_euclidean(X), labels) if clusters else None

    return ClusteringResult(
        clusters=clusters,
        outliers=outliers,
        silhouette_score=sil,
        metadata=ClusteringMetadata(algorithm="dbscan", convergence=True),
    )
