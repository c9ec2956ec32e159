"""
Base class for the remote analytics service abstraction.

The remote service owns everything this package does not compute locally:
graph-neural-network clustering and training, 2D projection for
visualization, theme extraction and server-side cluster analysis.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence

from ..models import (
    ClusterAnalysis,
    ClusteringResult,
    GNNClusteringOptions,
    GNNModelMetadata,
    GNNTrainingData,
    ProjectedPoint,
    ThemeExtraction,
)


class BaseThemeExtractor(ABC):
    """Anything that can name a cluster from a few representative texts."""

    @abstractmethod
    async def extract_theme(self, texts: Sequence[str], cluster_size: int) -> ThemeExtraction:
        """
        Produce a short theme label and keywords.

        Args:
            texts: Representative member texts, most central first.
            cluster_size: Number of members in the cluster.
        """


class BaseAnalyticsService(BaseThemeExtractor):
    """
    Abstract base class for remote analytics backends.

    Implementations raise ``RemoteServiceError`` on failure; retry policy
    belongs to the implementation's own transport.
    """

    @abstractmethod
    async def gnn_cluster(
        self,
        embedding_ids: Sequence[str],
        model_id: Optional[str] = None,
        options: Optional[GNNClusteringOptions] = None,
        gnn_config: Optional[Mapping[str, Any]] = None,
    ) -> ClusteringResult:
        """Cluster *embedding_ids* with the GNN backend."""

    @abstractmethod
    async def train_gnn_model(self, training_data: GNNTrainingData) -> GNNModelMetadata:
        """Train a GNN model on labeled embeddings and return its metadata."""

    @abstractmethod
    async def project_2d(self, embedding_ids: Sequence[str], method: str = "umap") -> List[ProjectedPoint]:
        """Project embeddings to 2D for display."""

    @abstractmethod
    async def analyze_cluster(self, cluster_id: str) -> ClusterAnalysis:
        """Return server-side statistics for a stored cluster."""

    async def close(self) -> None:
        """Release any underlying resources. No-op by default."""

    async def __aenter__(self) -> "BaseAnalyticsService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
