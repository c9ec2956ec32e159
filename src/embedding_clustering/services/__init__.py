"""
Service layer - the clustering facade and its visualization and theme
helpers.
"""

from ._shared import RemoteCallResult, call_remote
from .cluster_service import ClusterService
from .themes import LLMThemeExtractor, select_representatives
from .visualization import calculate_edges, circular_layout, cluster_centers

__all__ = [
    "ClusterService",
    "LLMThemeExtractor",
    "select_representatives",
    "RemoteCallResult",
    "call_remote",
    "calculate_edges",
    "circular_layout",
    "cluster_centers",
]
