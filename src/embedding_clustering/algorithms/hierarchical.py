"""
Agglomerative hierarchical clustering.

Builds a full merge tree over the inputs with average, complete or single
linkage (Lance-Williams updates on a Euclidean distance matrix) and cuts it
into k flat clusters.

The tree is a flat arena: node ``i`` for ``i < n`` is the leaf for input
``i``; the merge performed at step ``s`` creates node ``n + s``; the root is
the last node. Parent and child links are arena indices.

Memory is O(n^2) for the distance matrix and time is O(n^3) in the worst
case, so inputs beyond a few thousand embeddings should be sampled first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..exceptions import InvalidArgumentError
from ..models import (
    ClusteringMetadata,
    ClusteringResult,
    HierarchicalCluster,
    Linkage,
)
from ..utils.logging_config import get_logger
from .metrics import cluster_cohesion, estimate_num_clusters, silhouette_score
from .vector_math import Array2D, as_matrix, pairwise_euclidean

logger = get_logger(__name__)


@dataclass
class ClusterTree:
    """Arena of ``HierarchicalCluster`` nodes addressed by index."""

    nodes: List[HierarchicalCluster] = field(default_factory=list)
    root: int = 0

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, index: int) -> HierarchicalCluster:
        return self.nodes[index]

    def children_of(self, index: int) -> List[HierarchicalCluster]:
        return [self.nodes[c] for c in self.nodes[index].children]

    def parent_of(self, index: int) -> Optional[HierarchicalCluster]:
        parent = self.nodes[index].parent
        return self.nodes[parent] if parent is not None else None

    def leaves(self) -> List[HierarchicalCluster]:
        return [n for n in self.nodes if n.is_leaf]

    def cut(self, num_clusters: int) -> List[HierarchicalCluster]:
        """
        Split the tree into *num_clusters* flat clusters.

        Starting from the root, the frontier node with the greatest merge
        height is replaced by its children until the frontier holds
        *num_clusters* nodes. *num_clusters* is clamped to [1, number of
        leaves]. Nodes come back in frontier order.
        """
        if not self.nodes:
            return []
        k = max(1, min(num_clusters, len(self.leaves())))
        frontier = [self.root]
        while len(frontier) < k:
            pos = max(
                (p for p, i in enumerate(frontier) if not self.nodes[i].is_leaf),
                key=lambda p: self.nodes[frontier[p]].merge_height or 0.0,
            )
            i = frontier[pos]
            frontier[pos:pos + 1] = self.nodes[i].children
        return [self.nodes[i] for i in frontier]


def _merged_distance(
    linkage: Linkage,
    d_i: np.ndarray,
    d_j: np.ndarray,
    size_i: int,
    size_j: int,
) -> np.ndarray:
    """Lance-Williams distance from the merged cluster (i + j) to every other."""
    if linkage is Linkage.SINGLE:
        return np.minimum(d_i, d_j)
    if linkage is Linkage.COMPLETE:
        return np.maximum(d_i, d_j)
    return (size_i * d_i + size_j * d_j) / (size_i + size_j)


def agglomerate(dist: Array2D, linkage: Linkage = Linkage.AVERAGE) -> np.ndarray:
    """
    Run agglomerative clustering on a distance matrix.

    Returns an (n - 1, 3) merge table in the style of a SciPy linkage matrix:
    row ``s`` holds ``(left node, right node, height)`` for the merge that
    creates node ``n + s``. Ties pick the lowest (row, column) pair.
    """
    n = dist.shape[0]
    merges = np.zeros((max(n - 1, 0), 3), dtype=np.float64)
    if n <= 1:
        return merges

    D = dist.astype(np.float64, copy=True)
    np.fill_diagonal(D, np.inf)
    # slot -> arena index of the cluster currently living in that row
    slot_node = list(range(n))
    sizes = np.ones(n, dtype=int)

    for step in range(n - 1):
        flat = int(np.argmin(D))
        a, b = divmod(flat, n)
        i, j = (a, b) if a < b else (b, a)
        height = float(D[i, j])

        merges[step] = (slot_node[i], slot_node[j], height)

        new_row = _merged_distance(linkage, D[i], D[j], sizes[i], sizes[j])
        D[i, :] = new_row
        D[:, i] = new_row
        D[i, i] = np.inf
        D[j, :] = np.inf
        D[:, j] = np.inf

        sizes[i] += sizes[j]
        sizes[j] = 0
        slot_node[i] = n + step

    return merges


def build_tree(
    ids: Sequence[str],
    X: Array2D,
    merges: np.ndarray,
) -> ClusterTree:
    """
    Materialize a ``ClusterTree`` from a merge table.

    Every node gets its member ids, centroid and cohesion; levels are depths
    from the root (root = 0).
    """
    n = len(ids)
    nodes: List[HierarchicalCluster] = []
    member_rows: List[List[int]] = []

    for i in range(n):
        member_rows.append([i])
        nodes.append(
            HierarchicalCluster(
                id=f"node-{i}",
                members=[ids[i]],
                centroid=X[i].tolist(),
                cohesion=1.0,
                index=i,
            )
        )

    for step, (left, right, height) in enumerate(merges):
        index = n + step
        left, right = int(left), int(right)
        rows = member_rows[left] + member_rows[right]
        member_rows.append(rows)
        members_X = X[rows]
        nodes.append(
            HierarchicalCluster(
                id=f"node-{index}",
                members=[ids[r] for r in rows],
                centroid=members_X.mean(axis=0).tolist(),
                cohesion=cluster_cohesion(members_X),
                index=index,
                children=[left, right],
                merge_height=float(height),
            )
        )
        nodes[left].parent = index
        nodes[right].parent = index

    root = len(nodes) - 1
    stack = [(root, 0)]
    while stack:
        index, level = stack.pop()
        nodes[index].level = level
        stack.extend((c, level + 1) for c in nodes[index].children)

    return ClusterTree(nodes=nodes, root=root)


def build_hierarchy(
    ids: Sequence[str],
    vectors,
    linkage: Linkage = Linkage.AVERAGE,
) -> ClusterTree:
    """Compute distances, agglomerate and return the full tree."""
    X = as_matrix(vectors)
    n = X.shape[0]
    if n == 0:
        raise InvalidArgumentError("Cannot cluster an empty set of vectors")
    if len(ids) != n:
        raise InvalidArgumentError(f"Got {len(ids)} ids for {n} vectors")

    merges = agglomerate(pairwise_euclidean(X), Linkage.parse(linkage))
    tree = build_tree(ids, X, merges)
    logger.debug("Built hierarchy: n=%d, nodes=%d, linkage=%s", n, len(tree), linkage)
    return tree


def hierarchical_cluster(
    ids: Sequence[str],
    vectors,
    num_clusters: Optional[int] = None,
    linkage: Linkage = Linkage.AVERAGE,
) -> List[HierarchicalCluster]:
    """
    Cut the hierarchy into *num_clusters* clusters.

    *num_clusters* defaults to ``estimate_num_clusters(n)``.
    """
    tree = build_hierarchy(ids, vectors, linkage)
    k = num_clusters if num_clusters is not None else estimate_num_clusters(len(ids))
    return tree.cut(k)


def flatten_hierarchy(
    clusters: Sequence[HierarchicalCluster],
    ids: Sequence[str],
    vectors,
) -> ClusteringResult:
    """Turn a tree cut into a flat ``ClusteringResult`` with silhouette."""
    X = as_matrix(vectors)
    position: Dict[str, int] = {emb_id: i for i, emb_id in enumerate(ids)}
    labels = np.full(len(ids), -1, dtype=int)
    for c, cluster in enumerate(clusters):
        for member in cluster.members:
            labels[position[member]] = c

    return ClusteringResult(
        clusters=list(clusters),
        outliers=[ids[i] for i in np.where(labels < 0)[0]],
        silhouette_score=silhouette_score(pairwise_euclidean(X), labels),
        metadata=ClusteringMetadata(algorithm="hierarchical", convergence=True),
    )
