"""
2D layout for clustering results.

The remote projection is preferred; when it is unavailable or incomplete,
``circular_layout`` places every member deterministically so a result can
always be drawn.
"""

import math
from collections import defaultdict
from typing import Dict, List, Mapping, Sequence, Tuple

from ..models import (
    Cluster,
    ClusterCenter,
    ProjectedPoint,
    VisualizationEdge,
    VisualizationNode,
)

BASE_RADIUS = 100.0
RADIUS_PER_MEMBER = 10.0
CLUSTER_X_OFFSET = 50.0


def circular_layout(clusters: Sequence[Cluster]) -> List[VisualizationNode]:
    """
    Place each cluster's members evenly on a circle.

    Cluster ``i`` with ``size`` members uses radius ``100 + 10 * size`` and
    is shifted ``50 * i`` along x. Member ``j`` sits at angle
    ``2 * pi * j / size``.
    """
    nodes: List[VisualizationNode] = []
    for cluster_index, cluster in enumerate(clusters):
        size = cluster.size
        radius = BASE_RADIUS + size * RADIUS_PER_MEMBER
        for j, member in enumerate(cluster.members):
            angle = (j / size) * 2 * math.pi
            nodes.append(
                VisualizationNode(
                    id=member,
                    cluster_id=cluster.id,
                    x=radius * math.cos(angle) + cluster_index * CLUSTER_X_OFFSET,
                    y=radius * math.sin(angle),
                )
            )
    return nodes


def projected_nodes(
    clusters: Sequence[Cluster],
    projections: Sequence[ProjectedPoint],
) -> Tuple[List[VisualizationNode], List[str]]:
    """
    Build nodes from a remote projection.

    Returns:
        ``(nodes, missing)`` where *missing* lists member ids the projection
        did not cover.
    """
    by_id: Mapping[str, ProjectedPoint] = {p.id: p for p in projections}
    nodes: List[VisualizationNode] = []
    missing: List[str] = []
    for cluster in clusters:
        for member in cluster.members:
            point = by_id.get(member)
            if point is None:
                missing.append(member)
                continue
            nodes.append(
                VisualizationNode(
                    id=member,
                    cluster_id=cluster.id,
                    x=point.x,
                    y=point.y,
                    size=point.importance if point.importance is not None else 1.0,
                )
            )
    return nodes, missing


def calculate_edges(clusters: Sequence[Cluster]) -> List[VisualizationEdge]:
    """One edge per unordered member pair within a cluster, weighted by cohesion."""
    edges: List[VisualizationEdge] = []
    for cluster in clusters:
        members = cluster.members
        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                edges.append(
                    VisualizationEdge(
                        source=members[i],
                        target=members[j],
                        weight=cluster.cohesion,
                    )
                )
    return edges


def cluster_centers(nodes: Sequence[VisualizationNode]) -> List[ClusterCenter]:
    """Mean node position per cluster, in first-seen cluster order."""
    sums: Dict[str, List[float]] = defaultdict(lambda: [0.0, 0.0, 0])
    for node in nodes:
        acc = sums[node.cluster_id]
        acc[0] += node.x
        acc[1] += node.y
        acc[2] += 1
    return [
        ClusterCenter(cluster_id=cid, x=sx / count, y=sy / count)
        for cid, (sx, sy, count) in sums.items()
    ]
