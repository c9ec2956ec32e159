"""
Embedding Clustering - Core Package

Partitions embedding vectors into groups of similar items and derives
quality metrics, 2D layouts and theme labels from the result.

This package provides:
- Clustering engines (k-means, DBSCAN, hierarchical, threshold)
- Provider layer for embedding stores and the remote analytics service
- Service layer with the ``ClusterService`` facade
"""

__version__ = "0.1.0"

from .exceptions import (
    ClusteringBaseError,
    ClusteringError,
    DimensionMismatchError,
    InvalidArgumentError,
    RemoteServiceError,
)
from .models import (
    Cluster,
    ClusterConfig,
    ClusteringAlgorithm,
    ClusteringResult,
    Embedding,
)
from .services import ClusterService

# Explicitly import subpackages to ensure they're discoverable
from . import algorithms
from . import providers
from . import services
from . import utils

__all__ = [
    "ClusteringBaseError",
    "ClusteringError",
    "DimensionMismatchError",
    "InvalidArgumentError",
    "RemoteServiceError",
    "Cluster",
    "ClusterConfig",
    "ClusteringAlgorithm",
    "ClusteringResult",
    "Embedding",
    "ClusterService",
    "algorithms",
    "providers",
    "services",
    "utils",
]
