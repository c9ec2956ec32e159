"""
Legacy threshold-based clustering.

Single pass, greedy and order dependent: each unassigned embedding seeds a
cluster, and every later unassigned embedding whose cosine similarity to
the cluster's running centroid reaches the threshold joins it. Kept for
callers that depend on the old grouping behaviour.

Only similarity to the evolving centroid is checked, so two members of one
cluster can be less similar to each other than the threshold.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from ..exceptions import InvalidArgumentError
from ..models import Cluster
from .metrics import cluster_cohesion
from .vector_math import as_matrix, cosine_similarity

DEFAULT_THRESHOLD = 0.7


def threshold_cluster(
    ids: Sequence[str],
    vectors,
    threshold: float = DEFAULT_THRESHOLD,
) -> List[Cluster]:
    """
    Group embeddings by similarity to a running centroid.

    Args:
        ids: Embedding ids, in processing order
        vectors: Matching vectors
        threshold: Minimum cosine similarity to join a cluster

    Returns:
        Clusters ``cluster-0``, ``cluster-1``, ... forming a strict
        partition of *ids*.
    """
    X = as_matrix(vectors)
    n = X.shape[0]
    if len(ids) != n:
        raise InvalidArgumentError(f"Got {len(ids)} ids for {n} vectors")

    assigned = np.zeros(n, dtype=bool)
    clusters: List[Cluster] = []

    for i in range(n):
        if assigned[i]:
            continue
        rows = [i]
        assigned[i] = True
        running_sum = X[i].copy()

        for j in range(i + 1, n):
            if assigned[j]:
                continue
            current_centroid = running_sum / len(rows)
            if cosine_similarity(X[j], current_centroid) >= threshold:
                rows.append(j)
                assigned[j] = True
                running_sum += X[j]

        members_X = X[rows]
        clusters.append(
            Cluster(
                id=f"cluster-{len(clusters)}",
                members=[ids[r] for r in rows],
                centroid=members_X.mean(axis=0).tolist(),
                cohesion=cluster_cohesion(members_X),
            )
        )

    return clusters
