"""
Algorithm Core Library - clustering engines and vector math.

Pure numpy implementations with no I/O, kept separate from the service
layer so they can be reused and tested on their own.
"""

from .vector_math import (
    as_matrix,
    cosine_similarity,
    euclidean_distance,
    centroid,
    average_pairwise_similarity,
    pairwise_euclidean,
    weighted_random_choice,
)
from .metrics import (
    estimate_num_clusters,
    cluster_cohesion,
    cluster_statistics,
    silhouette_score,
)
from .kmeans import kmeans, kmeans_cluster, kmeanspp_init, KMeansResult
from .dbscan import dbscan, dbscan_cluster, eps_from_similarity
from .hierarchical import (
    ClusterTree,
    agglomerate,
    build_hierarchy,
    hierarchical_cluster,
    flatten_hierarchy,
)
from .threshold import threshold_cluster

__all__ = [
    # Vector math
    "as_matrix",
    "cosine_similarity",
    "euclidean_distance",
    "centroid",
    "average_pairwise_similarity",
    "pairwise_euclidean",
    "weighted_random_choice",
    # Metrics
    "estimate_num_clusters",
    "cluster_cohesion",
    "cluster_statistics",
    "silhouette_score",
    # K-means
    "kmeans",
    "kmeans_cluster",
    "kmeanspp_init",
    "KMeansResult",
    # DBSCAN
    "dbscan",
    "dbscan_cluster",
    "eps_from_similarity",
    # Hierarchical
    "ClusterTree",
    "agglomerate",
    "build_hierarchy",
    "hierarchical_cluster",
    "flatten_hierarchy",
    # Legacy
    "threshold_cluster",
]
